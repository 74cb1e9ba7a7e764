"""
Step Invoker

Performs one step's externally observable action: a module endpoint call or
a nested chain run. Step-local failures are returned as data, never raised.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from chain_gateway.clients.modules.caller import ModuleCaller
from chain_gateway.clients.modules.models import ModuleRequest

from .conditions import evaluate
from .context import ExecutionContext
from .errors import ChainExecutionError, ModuleCallError
from .models import (
    ChainCallStep,
    ChainId,
    ExecutionResult,
    ModuleCallStep,
    StepRequest,
    StepResult,
)
from .templates import render

logger = logging.getLogger(__name__)

# (chain_id, input, parent context) -> nested ExecutionResult
ChainRunner = Callable[[ChainId, Dict[str, Any], ExecutionContext], Awaitable[ExecutionResult]]


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class StepInvoker:
    """
    Invokes chain steps

    Args:
        caller: Module endpoint caller
        chain_runner: Coroutine running a nested chain (provided by the orchestrator)
        default_timeout_ms: Timeout for module calls without their own
    """

    def __init__(
        self,
        caller: ModuleCaller,
        chain_runner: Optional[ChainRunner] = None,
        default_timeout_ms: int = 30000
    ):
        self.caller = caller
        self.chain_runner = chain_runner
        self.default_timeout_ms = default_timeout_ms

    async def invoke(self, step, context: ExecutionContext, depth: int = 0) -> StepResult:
        """
        Invoke one step

        Args:
            step: ModuleCallStep or ChainCallStep
            context: Current context snapshot
            depth: Recursion depth of the running chain

        Returns:
            StepResult (success=False for module/sub-chain failures)

        Raises:
            EvalError: If the step's guard condition is malformed
            ChainExecutionError: For execution-level faults inside a chain call
        """
        if step.condition is not None and not evaluate(step.condition, context):
            logger.info(f"Step {step.id} skipped (condition not met)")
            return StepResult(
                step_id=step.id,
                step_name=step.name,
                step_type=step.type,
                success=True,
                skipped=True,
            )

        if isinstance(step, ModuleCallStep):
            return await self._invoke_module_call(step, context)
        elif isinstance(step, ChainCallStep):
            return await self._invoke_chain_call(step, context, depth)
        else:
            raise TypeError(f"Unknown step type: {type(step).__name__}")

    async def _invoke_module_call(
        self,
        step: ModuleCallStep,
        context: ExecutionContext
    ) -> StepResult:
        start = time.perf_counter()

        params = render(step.params, context) or {}
        body = render(step.body, context)
        headers = render(step.headers, context) or {}
        timeout_ms = step.timeout if step.timeout is not None else self.default_timeout_ms

        request = StepRequest(
            url=self.caller.build_url(step.module, step.endpoint, params),
            params=params,
            body=body,
            headers=headers,
        )
        module_request = ModuleRequest(
            module=step.module,
            endpoint=step.endpoint,
            method=step.method.value,
            params=params,
            body=body,
            headers={k: str(v) for k, v in headers.items() if v is not None},
            timeout=timeout_ms / 1000,
        )

        recorded = dict(
            step_id=step.id,
            step_name=step.name,
            step_type="module_call",
            module=step.module,
            endpoint=step.endpoint,
            method=step.method,
            request=request,
        )

        logger.info(f"Step {step.id}: {step.method.value} {step.module}{step.endpoint}")

        try:
            response = await asyncio.wait_for(
                self.caller.call(module_request),
                timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            error = f"Request to {step.module} {step.endpoint} timed out after {timeout_ms}ms"
            logger.warning(f"Step {step.id}: {error}")
            return StepResult(**recorded, success=False, error=error, duration_ms=_elapsed_ms(start))
        except ModuleCallError as e:
            logger.warning(f"Step {step.id}: {e}")
            return StepResult(**recorded, success=False, error=str(e), duration_ms=_elapsed_ms(start))

        if response.url:
            recorded["request"] = request.model_copy(update={"url": response.url})

        success = response.is_success
        error = None
        if not success:
            error = f"{step.module} {step.endpoint} returned HTTP {response.status}"
            if response.status_text:
                error += f" {response.status_text}"
            logger.warning(f"Step {step.id}: {error}")
        else:
            logger.info(f"Step {step.id}: success ({_elapsed_ms(start)}ms)")

        return StepResult(
            **recorded,
            response=response.data,
            status_code=response.status,
            success=success,
            error=error,
            duration_ms=_elapsed_ms(start),
        )

    async def _invoke_chain_call(
        self,
        step: ChainCallStep,
        context: ExecutionContext,
        depth: int
    ) -> StepResult:
        if self.chain_runner is None:
            raise RuntimeError("No chain runner configured - cannot invoke sub-chains")

        start = time.perf_counter()
        sub_input = render(step.input_mapping, context) or {}

        logger.info(f"Step {step.id}: invoking chain {step.chain_id} (depth {depth + 1})")

        recorded = dict(
            step_id=step.id,
            step_name=step.name,
            step_type="chain_call",
            sub_chain_id=step.chain_id,
            request=StepRequest(body=sub_input),
        )

        try:
            sub_result = await self.chain_runner(step.chain_id, sub_input, context)
        except ChainExecutionError as e:
            # Fault while entering the sub-chain (not found, depth exceeded)
            e.step_result = StepResult(
                **recorded,
                success=False,
                error=e.message,
                duration_ms=_elapsed_ms(start),
            )
            raise

        result = StepResult(
            **recorded,
            response=self._sub_chain_output(sub_result),
            success=sub_result.success,
            error=(
                None if sub_result.success
                else f"Sub-chain {step.chain_id} failed: {sub_result.error or 'one or more steps failed'}"
            ),
            duration_ms=_elapsed_ms(start),
            sub_chain_result=sub_result,
        )

        if sub_result.error_code:
            # Faults inside the sub-chain halt the invoking chain too
            raise ChainExecutionError(sub_result.error_code, result.error, step_result=result)

        return result

    @staticmethod
    def _sub_chain_output(sub_result: ExecutionResult) -> Any:
        """Sub-chain output, or its last step's response when it has no output template"""
        if sub_result.output is not None:
            return sub_result.output
        if sub_result.steps:
            return sub_result.steps[-1].response
        return None
