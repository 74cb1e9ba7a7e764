"""
CRUD operations for execution history
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union
from sqlalchemy.orm import Session
from sqlalchemy import case, desc, func

from chain_gateway.chains.models import ExecutionResult
from ..models import ChainDefinitionRecord, ExecutionRecord


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def save_execution(session: Session, result: ExecutionResult) -> ExecutionRecord:
    """Persist a finished execution"""
    data = result.model_dump(mode="json")
    record = ExecutionRecord(
        execution_id=result.execution_id,
        user_id=result.user_id,
        chain_id=None if result.chain_id is None else str(result.chain_id),
        chain_name=result.chain_name,
        input=data["input"],
        steps=data["steps"],
        output=data["output"],
        success=result.success,
        status=result.status.value,
        error=result.error,
        error_code=result.error_code,
        jumped_to_chain_id=None if result.jumped_to_chain_id is None else str(result.jumped_to_chain_id),
        total_duration_ms=result.total_duration_ms,
        started_at=_naive_utc(result.started_at),
        completed_at=_naive_utc(result.completed_at),
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def get_execution(session: Session, execution_id: Union[int, str]) -> Optional[ExecutionRecord]:
    """Get execution by executor UUID or numeric record ID"""
    record = session.query(ExecutionRecord).filter(ExecutionRecord.execution_id == str(execution_id)).first()
    if record is None and str(execution_id).isdigit():
        record = session.query(ExecutionRecord).filter(ExecutionRecord.id == int(execution_id)).first()
    return record


def list_executions(
    session: Session,
    user_id: Optional[str] = None,
    chain_id: Optional[Union[int, str]] = None,
    success: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[ExecutionRecord]:
    """List executions with optional filtering, newest first"""
    query = session.query(ExecutionRecord)
    if user_id:
        query = query.filter(ExecutionRecord.user_id == user_id)
    if chain_id is not None:
        query = query.filter(ExecutionRecord.chain_id == str(chain_id))
    if success is not None:
        query = query.filter(ExecutionRecord.success == success)
    return (
        query.order_by(desc(ExecutionRecord.started_at), desc(ExecutionRecord.id))
        .limit(limit)
        .offset(offset)
        .all()
    )


def get_recent_executions(session: Session, limit: int = 10) -> List[ExecutionRecord]:
    """Most recent executions"""
    return list_executions(session, limit=limit)


def delete_execution(session: Session, execution_id: Union[int, str]) -> bool:
    """Delete an execution record"""
    record = get_execution(session, execution_id)
    if not record:
        return False

    session.delete(record)
    session.commit()
    return True


def execution_to_dict(record: ExecutionRecord, include_steps: bool = True) -> Dict[str, Any]:
    """Serialize an execution record for API responses"""
    data = {
        "id": record.id,
        "execution_id": record.execution_id,
        "user_id": record.user_id,
        "chain_id": record.chain_id,
        "chain_name": record.chain_name,
        "input": record.input,
        "output": record.output,
        "success": record.success,
        "status": record.status,
        "error": record.error,
        "error_code": record.error_code,
        "jumped_to_chain_id": record.jumped_to_chain_id,
        "total_duration_ms": record.total_duration_ms,
        "started_at": record.started_at.isoformat() if record.started_at else None,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
    }
    if include_steps:
        data["steps"] = record.steps
    return data


def _count_modules(steps: List[Dict[str, Any]], counts: Counter):
    for step in steps or []:
        if step.get("module") and not step.get("skipped"):
            counts[step["module"]] += 1
        if step.get("sub_chain_result"):
            _count_modules(step["sub_chain_result"].get("steps"), counts)


def get_statistics(session: Session, recent: int = 10) -> Dict[str, Any]:
    """
    Aggregate execution statistics

    Returns:
        Dict with totals, success/failure counts, average duration, chains per
        user, executions per chain and module calls per module (counted over
        successful executions, including nested chain calls)
    """
    total, successful, average, first, last = session.query(
        func.count(ExecutionRecord.id),
        func.sum(case((ExecutionRecord.success.is_(True), 1), else_=0)),
        func.avg(ExecutionRecord.total_duration_ms),
        func.min(ExecutionRecord.started_at),
        func.max(ExecutionRecord.started_at),
    ).one()
    total = total or 0
    successful = int(successful or 0)

    chains_by_user = (
        session.query(ChainDefinitionRecord.user_id, func.count(ChainDefinitionRecord.id).label("count"))
        .group_by(ChainDefinitionRecord.user_id)
        .order_by(desc("count"))
        .limit(10)
        .all()
    )

    executions_by_chain = (
        session.query(
            ExecutionRecord.chain_id,
            ExecutionRecord.chain_name,
            func.count(ExecutionRecord.id).label("count"),
        )
        .group_by(ExecutionRecord.chain_id, ExecutionRecord.chain_name)
        .order_by(desc("count"))
        .all()
    )

    module_counts: Counter = Counter()
    for (steps,) in session.query(ExecutionRecord.steps).filter(ExecutionRecord.success.is_(True)):
        _count_modules(steps, module_counts)

    return {
        "total_chains": session.query(func.count(ChainDefinitionRecord.id)).scalar() or 0,
        "total_executions": total,
        "successful_executions": successful,
        "failed_executions": total - successful,
        "average_duration_ms": int(round(average or 0)),
        "first_execution": first.isoformat() if first else None,
        "last_execution": last.isoformat() if last else None,
        "chains_by_user": [
            {"user_id": user_id, "count": count} for user_id, count in chains_by_user
        ],
        "executions_by_chain": [
            {"chain_id": chain_id, "chain_name": chain_name, "count": count}
            for chain_id, chain_name, count in executions_by_chain
        ],
        "executions_by_module": [
            {"module": module, "count": count} for module, count in module_counts.most_common()
        ],
        "recent_executions": [
            execution_to_dict(record, include_steps=False)
            for record in get_recent_executions(session, limit=recent)
        ],
    }
