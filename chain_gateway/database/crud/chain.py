"""
CRUD operations for saved chain definitions
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import desc

from chain_gateway.chains.models import ChainConfiguration
from ..models import ChainDefinitionRecord


def create_chain_definition(
    session: Session,
    user_id: str,
    name: str,
    steps: List[Dict[str, Any]],
    description: Optional[str] = None,
    output_template: Optional[Any] = None,
    meta_data: Optional[Dict[str, Any]] = None,
) -> ChainDefinitionRecord:
    """Create a new chain definition record"""
    record = ChainDefinitionRecord(
        user_id=user_id,
        name=name,
        description=description,
        steps=steps,
        output_template=output_template,
        meta_data=meta_data or {},
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def save_chain(session: Session, chain: ChainConfiguration, user_id: Optional[str] = None) -> ChainDefinitionRecord:
    """Persist a ChainConfiguration as a new record"""
    data = chain.model_dump(mode="json", by_alias=True, exclude_none=True)
    return create_chain_definition(
        session,
        user_id=user_id or chain.user_id or "system",
        name=chain.name,
        steps=data["steps"],
        description=chain.description,
        output_template=chain.output_template,
        meta_data=chain.meta_data,
    )


def get_chain_definition(session: Session, chain_id: int) -> Optional[ChainDefinitionRecord]:
    """Get chain definition by ID"""
    return session.query(ChainDefinitionRecord).filter(ChainDefinitionRecord.id == chain_id).first()


def get_chain_definition_by_name(session: Session, name: str) -> Optional[ChainDefinitionRecord]:
    """Get the most recently created chain definition with this name"""
    return (
        session.query(ChainDefinitionRecord)
        .filter(ChainDefinitionRecord.name == name)
        .order_by(desc(ChainDefinitionRecord.id))
        .first()
    )


def list_chain_definitions(
    session: Session,
    user_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[ChainDefinitionRecord]:
    """List chain definitions, newest first"""
    query = session.query(ChainDefinitionRecord)
    if user_id:
        query = query.filter(ChainDefinitionRecord.user_id == user_id)
    return (
        query.order_by(desc(ChainDefinitionRecord.created_at), desc(ChainDefinitionRecord.id))
        .limit(limit)
        .offset(offset)
        .all()
    )


def update_chain_definition(
    session: Session,
    chain_id: int,
    **fields: Any,
) -> Optional[ChainDefinitionRecord]:
    """Update name/description/steps/output_template/meta_data of a chain"""
    record = get_chain_definition(session, chain_id)
    if not record:
        return None

    for key in ("name", "description", "steps", "output_template", "meta_data"):
        if key in fields and fields[key] is not None:
            setattr(record, key, fields[key])

    session.commit()
    session.refresh(record)
    return record


def delete_chain_definition(session: Session, chain_id: int) -> bool:
    """Delete a chain definition"""
    record = get_chain_definition(session, chain_id)
    if not record:
        return False

    session.delete(record)
    session.commit()
    return True


def record_to_chain(record: ChainDefinitionRecord) -> ChainConfiguration:
    """Convert a database record into a ChainConfiguration"""
    return ChainConfiguration.model_validate({
        "id": record.id,
        "user_id": record.user_id,
        "name": record.name,
        "description": record.description,
        "steps": record.steps,
        "output_template": record.output_template,
        "meta_data": record.meta_data or {},
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    })
