"""
Routing Engine

Decides the next control-flow action after a step finishes by evaluating the
step's routing rules in declared order (first match wins).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Collection, Dict, Optional

from .conditions import evaluate
from .context import ExecutionContext
from .errors import ChainExecutionError, ErrorCode
from .models import ChainId, RoutingAction, RoutingRule, StepResult
from .templates import render

logger = logging.getLogger(__name__)


class ControlActionKind(str, Enum):
    CONTINUE = "continue"
    SKIP_TO = "skip_to"
    JUMP_TO = "jump_to"
    STOP = "stop"


@dataclass(frozen=True)
class ControlAction:
    """
    Control-flow action applied by the orchestrator

    Attributes:
        kind: Continue, SkipTo, JumpTo or Stop
        step_id: Target step for SkipTo
        chain_id: Target chain for JumpTo
        chain_input: Mapped input for the jumped-to chain
    """
    kind: ControlActionKind
    step_id: Optional[str] = None
    chain_id: Optional[ChainId] = None
    chain_input: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def proceed(cls) -> "ControlAction":
        return cls(ControlActionKind.CONTINUE)

    @classmethod
    def skip_to(cls, step_id: str) -> "ControlAction":
        return cls(ControlActionKind.SKIP_TO, step_id=step_id)

    @classmethod
    def jump_to(cls, chain_id: ChainId, chain_input: Dict[str, Any]) -> "ControlAction":
        return cls(ControlActionKind.JUMP_TO, chain_id=chain_id, chain_input=chain_input)

    @classmethod
    def stop(cls) -> "ControlAction":
        return cls(ControlActionKind.STOP)

    def describe(self) -> str:
        if self.kind is ControlActionKind.SKIP_TO:
            return f"{RoutingAction.SKIP_TO_STEP.value} → {self.step_id}"
        if self.kind is ControlActionKind.JUMP_TO:
            return f"{RoutingAction.JUMP_TO_CHAIN.value} → {self.chain_id}"
        if self.kind is ControlActionKind.STOP:
            return RoutingAction.STOP_CHAIN.value
        return "continue"


@dataclass(frozen=True)
class RoutingDecision:
    """Outcome of routing one step, including trace diagnostics"""
    action: ControlAction
    evaluated: bool = False
    matched_rule: Optional[RoutingRule] = None
    matched_index: Optional[int] = None

    def annotate(self, result: StepResult) -> StepResult:
        """Copy routing diagnostics onto a step result"""
        if not self.evaluated:
            return result
        return result.model_copy(update={
            "routing_evaluated": True,
            "routing_matched": self.matched_rule,
            "routing_matched_index": self.matched_index,
            "routing_action_taken": (
                self.action.describe() if self.matched_rule is not None else None
            ),
        })


class RoutingEngine:
    """
    Evaluates routing rules attached to a step

    Usage:
        engine = RoutingEngine()
        decision = engine.route(step, result, context.with_result(result), step_ids)
        if decision.action.kind is ControlActionKind.SKIP_TO:
            ...
    """

    def route(
        self,
        step,
        step_result: StepResult,
        context: ExecutionContext,
        step_ids: Optional[Collection[str]] = None
    ) -> RoutingDecision:
        """
        Decide what happens after a step

        Args:
            step: Step that just finished
            step_result: Its result (already recorded in `context`)
            context: Snapshot including this step's result
            step_ids: Step IDs of the running chain, to validate skip targets

        Returns:
            RoutingDecision (Continue when no rule matches)

        Raises:
            EvalError: If a rule's condition is malformed
            ChainExecutionError: INVALID_TARGET_STEP / INVALID_TARGET_CHAIN
        """
        rules = step.conditional_routing
        if not rules:
            return RoutingDecision(action=ControlAction.proceed())

        logger.debug(f"Step {step_result.step_id}: evaluating {len(rules)} routing rule(s)")

        for index, rule in enumerate(rules):
            if not evaluate(rule.condition, context):
                continue

            logger.info(
                f"Step {step_result.step_id}: routing rule {index + 1} matched "
                f"({rule.description or rule.action.value})"
            )
            action = self._action_for(rule, context, step_ids)
            return RoutingDecision(
                action=action,
                evaluated=True,
                matched_rule=rule,
                matched_index=index,
            )

        logger.debug(f"Step {step_result.step_id}: no routing rules matched")
        return RoutingDecision(action=ControlAction.proceed(), evaluated=True)

    def _action_for(
        self,
        rule: RoutingRule,
        context: ExecutionContext,
        step_ids: Optional[Collection[str]]
    ) -> ControlAction:
        if rule.action is RoutingAction.STOP_CHAIN:
            return ControlAction.stop()

        if rule.action is RoutingAction.SKIP_TO_STEP:
            target = None if rule.target is None else str(rule.target)
            if target is None or (step_ids is not None and target not in step_ids):
                raise ChainExecutionError(
                    ErrorCode.INVALID_TARGET_STEP,
                    f"Routing target step not found: {rule.target}"
                )
            return ControlAction.skip_to(target)

        if rule.action is RoutingAction.JUMP_TO_CHAIN:
            if rule.target is None or rule.target == "":
                raise ChainExecutionError(
                    ErrorCode.INVALID_TARGET_CHAIN,
                    "jump_to_chain rule has no target chain"
                )
            chain_input = render(rule.input_mapping or {}, context)
            return ControlAction.jump_to(rule.target, chain_input)

        raise ChainExecutionError(
            ErrorCode.EVAL_ERROR,
            f"Unknown routing action: {rule.action}"
        )
