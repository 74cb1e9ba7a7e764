"""
Chain Executor

The execution orchestrator: owns the step cursor, the context snapshots and
recursion depth of a run, applies routing actions and assembles the final
ExecutionResult.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from chain_gateway.clients.modules.caller import ModuleCaller

from .context import ExecutionContext
from .errors import ChainExecutionError, ChainNotFoundError, ErrorCode
from .invoker import StepInvoker
from .models import (
    ChainConfiguration,
    ChainId,
    ExecutionResult,
    ExecutionStatus,
    StepResult,
    utcnow,
)
from .routing import ControlActionKind, RoutingEngine
from .templates import render

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 100
DEFAULT_MAX_RECURSION_DEPTH = 10


class RunState(str, Enum):
    """Orchestrator states of a single run"""
    RUNNING = "running"
    SKIPPING = "skipping"
    JUMPING = "jumping"
    STOPPED = "stopped"
    COMPLETED = "completed"
    FAILED = "failed"


class _Run:
    """Bookkeeping for one run (never shared between runs)"""

    def __init__(self, chain: ChainConfiguration, context: ExecutionContext, execution_id: str):
        self.chain = chain
        self.context = context
        self.execution_id = execution_id
        self.state = RunState.RUNNING
        self.steps: List[StepResult] = []
        self.started_at = utcnow()
        self.start = time.perf_counter()
        self.jump_result: Optional[ExecutionResult] = None
        self.jumped_to_chain_id: Optional[ChainId] = None

    def record(self, result: StepResult):
        self.steps.append(result)


class ChainExecutor:
    """
    Executes chain configurations

    One executor may serve many concurrent runs; all per-run state lives in
    the run's own context snapshots and trace.

    Usage:
        executor = ChainExecutor(store, ModuleHTTPClient(base_urls))
        result = await executor.execute("character_context", {"userId": "user1"})
        print(result.status, result.output)
    """

    def __init__(
        self,
        store,
        caller: ModuleCaller,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_recursion_depth: int = DEFAULT_MAX_RECURSION_DEPTH,
        sinks: Iterable = (),
        default_timeout_ms: int = 30000
    ):
        """
        Initialize executor

        Args:
            store: ChainStore used to load chains by ID
            caller: Module endpoint caller
            max_steps: Maximum step executions per run
            max_recursion_depth: Maximum nesting depth (top-level run is 0)
            sinks: ExecutionLogSinks notified after each top-level run
            default_timeout_ms: Module call timeout for steps without one
        """
        self.store = store
        self.caller = caller
        self.max_steps = max_steps
        self.max_recursion_depth = max_recursion_depth
        self.sinks = list(sinks)
        self.routing = RoutingEngine()
        self.invoker = StepInvoker(
            caller,
            chain_runner=self._run_nested,
            default_timeout_ms=default_timeout_ms,
        )

    async def execute(
        self,
        chain: Union[ChainConfiguration, ChainId],
        input: Optional[Mapping[str, Any]] = None,
        env: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        execution_id: Optional[str] = None
    ) -> ExecutionResult:
        """
        Execute a chain

        Args:
            chain: Saved chain ID or an ad-hoc ChainConfiguration
            input: Chain input
            env: Environment map exposed as the `env` context root
            user_id: Invoking user
            execution_id: Optional execution ID (generated when omitted)

        Returns:
            ExecutionResult; execution-level failures are reported through
            error/error_code rather than raised
        """
        input = dict(input or {})
        execution_id = execution_id or str(uuid.uuid4())

        if not isinstance(chain, ChainConfiguration):
            chain_id = chain
            try:
                chain = await self.store.get_chain(chain_id)
            except ChainNotFoundError as e:
                logger.warning(f"Execution {execution_id}: {e}")
                now = utcnow()
                result = ExecutionResult(
                    execution_id=execution_id,
                    user_id=user_id,
                    chain_id=chain_id,
                    input=input,
                    success=False,
                    status=ExecutionStatus.FAILED,
                    error=str(e),
                    error_code=ErrorCode.CHAIN_NOT_FOUND.value,
                    started_at=now,
                    completed_at=now,
                )
                await self._emit(result)
                return result

        context = ExecutionContext(
            input=input,
            env=dict(env or {}),
            user_id=user_id or chain.user_id,
            chain_id=chain.id,
        )

        logger.info(f"Execution {execution_id}: starting chain '{chain.name}' ({len(chain.steps)} steps)")

        result = await self._run(chain, context, execution_id)

        logger.info(
            f"Execution {execution_id}: {result.status.value} "
            f"(success={result.success}, {len(result.steps)} steps, {result.total_duration_ms}ms)"
        )

        await self._emit(result)
        return result

    # ========================================================================
    # Run loop
    # ========================================================================

    async def _run(
        self,
        chain: ChainConfiguration,
        context: ExecutionContext,
        execution_id: Optional[str] = None
    ) -> ExecutionResult:
        run = _Run(chain, context, execution_id or str(uuid.uuid4()))
        index = chain.step_index()
        step_ids = set(index)
        cursor = 0

        try:
            while cursor < len(chain.steps):
                if len(run.steps) >= self.max_steps:
                    raise ChainExecutionError(
                        ErrorCode.MAX_STEPS_EXCEEDED,
                        f"Chain '{chain.name}' exceeded {self.max_steps} step executions"
                    )

                step = chain.steps[cursor]
                result = await self.invoker.invoke(step, run.context, context.depth)
                run.context = run.context.with_result(result)

                if result.skipped:
                    run.record(result)
                    cursor += 1
                    continue

                try:
                    decision = self.routing.route(step, result, run.context, step_ids)
                except ChainExecutionError:
                    run.record(result)
                    raise

                result = decision.annotate(result)
                run.context = run.context.with_result(result)
                run.record(result)

                action = decision.action
                if action.kind is ControlActionKind.CONTINUE:
                    cursor += 1
                elif action.kind is ControlActionKind.SKIP_TO:
                    run.state = RunState.SKIPPING
                    logger.info(f"Chain '{chain.name}': skipping from {step.id} to {action.step_id}")
                    cursor = index[action.step_id]
                    run.state = RunState.RUNNING
                elif action.kind is ControlActionKind.STOP:
                    logger.info(f"Chain '{chain.name}': stopped at step {step.id}")
                    run.state = RunState.STOPPED
                    break
                elif action.kind is ControlActionKind.JUMP_TO:
                    run.state = RunState.JUMPING
                    return await self._jump(run, action.chain_id, action.chain_input)

            if run.state is RunState.RUNNING:
                run.state = RunState.COMPLETED

        except ChainExecutionError as e:
            if e.step_result is not None:
                run.record(e.step_result)
            return self._fail(run, e)

        return self._finish(run)

    async def _jump(
        self,
        run: _Run,
        chain_id: ChainId,
        chain_input: Dict[str, Any]
    ) -> ExecutionResult:
        """Tail-call into another chain; its outcome replaces this run's"""
        logger.info(f"Chain '{run.chain.name}': jumping to chain {chain_id}")
        run.jumped_to_chain_id = chain_id

        try:
            target = await self._load_target(chain_id, ErrorCode.INVALID_TARGET_CHAIN)
            self._check_depth(run.context, chain_id)
        except ChainExecutionError as e:
            return self._fail(run, e)

        jump_result = await self._run(target, run.context.child(chain_input, target.id or chain_id))
        run.jump_result = jump_result

        if jump_result.error_code:
            return self._fail(run, ChainExecutionError(
                jump_result.error_code,
                f"Jumped-to chain {chain_id} failed: {jump_result.error}"
            ))

        run.state = RunState.COMPLETED
        return self._assemble(
            run,
            status=jump_result.status,
            success=jump_result.success,
            output=jump_result.output,
        )

    async def _run_nested(
        self,
        chain_id: ChainId,
        chain_input: Dict[str, Any],
        parent: ExecutionContext
    ) -> ExecutionResult:
        """Run a sub-chain for a chain_call step"""
        self._check_depth(parent, chain_id)
        chain = await self._load_target(chain_id, ErrorCode.CHAIN_NOT_FOUND)
        return await self._run(chain, parent.child(chain_input, chain.id or chain_id))

    def _check_depth(self, context: ExecutionContext, chain_id: ChainId):
        """Refuse to enter chain_id one level below context when that passes the limit"""
        if context.depth + 1 > self.max_recursion_depth:
            path = " -> ".join(str(c) for c in context.lineage() + (chain_id,))
            raise ChainExecutionError(
                ErrorCode.MAX_RECURSION_EXCEEDED,
                f"Maximum recursion depth ({self.max_recursion_depth}) exceeded entering chain {chain_id} "
                f"(call path: {path})"
            )

    async def _load_target(self, chain_id: ChainId, code: ErrorCode) -> ChainConfiguration:
        try:
            return await self.store.get_chain(chain_id)
        except ChainNotFoundError as e:
            raise ChainExecutionError(code, str(e))

    # ========================================================================
    # Result assembly
    # ========================================================================

    def _finish(self, run: _Run) -> ExecutionResult:
        output = None
        if run.chain.output_template is not None:
            output = render(run.chain.output_template, run.context)

        status = (
            ExecutionStatus.STOPPED if run.state is RunState.STOPPED
            else ExecutionStatus.COMPLETED
        )
        return self._assemble(
            run,
            status=status,
            success=all(step.success for step in run.steps),
            output=output,
        )

    def _fail(self, run: _Run, error: ChainExecutionError) -> ExecutionResult:
        run.state = RunState.FAILED
        logger.warning(f"Chain '{run.chain.name}' failed: {error}")
        return self._assemble(
            run,
            status=ExecutionStatus.FAILED,
            success=False,
            output=None,
            error=error.message,
            error_code=error.code.value,
        )

    def _assemble(
        self,
        run: _Run,
        status: ExecutionStatus,
        success: bool,
        output: Any,
        error: Optional[str] = None,
        error_code: Optional[str] = None
    ) -> ExecutionResult:
        completed_at: datetime = utcnow()
        return ExecutionResult(
            execution_id=run.execution_id,
            user_id=run.context.user_id,
            chain_id=run.chain.id,
            chain_name=run.chain.name,
            input=dict(run.context.input),
            steps=run.steps,
            output=output,
            success=success,
            status=status,
            error=error,
            error_code=error_code,
            total_duration_ms=int(round((time.perf_counter() - run.start) * 1000)),
            started_at=run.started_at,
            completed_at=completed_at,
            depth=run.context.depth,
            jumped_to_chain_id=run.jumped_to_chain_id,
            jump_result=run.jump_result,
        )

    async def _emit(self, result: ExecutionResult):
        """Notify log sinks off the event loop; sink failures never affect the result"""
        loop = asyncio.get_running_loop()
        for sink in self.sinks:
            try:
                await loop.run_in_executor(None, sink.record, result)
            except Exception as e:
                logger.error(f"Execution log sink {type(sink).__name__} failed: {e}")
