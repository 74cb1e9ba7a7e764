"""
Chain Models

Data models for chain definitions, condition trees and execution traces.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
)


ChainId = Union[int, str]

# Context roots that step identifiers may not shadow
RESERVED_ROOTS = ("input", "env", "context")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Conditions
# ============================================================================

class ConditionOperator(str, Enum):
    """Comparison operators available to condition leaves"""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_OR_EQUAL = "less_or_equal"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class ConditionLeaf(BaseModel):
    """
    Single comparison against a context field

    Attributes:
        field: Dotted path into the context (e.g., "step_1.response.user.name")
        operator: Comparison operator
        value: Value to compare against (unused by exists/not_exists)
    """
    field: str = Field(..., description="Context field path")
    operator: ConditionOperator
    value: Any = None


class ConditionGroup(BaseModel):
    """
    AND/OR combination of nested conditions

    An empty conditions list is accepted here and rejected by the evaluator,
    so a malformed tree fails the run with EVAL_ERROR instead of failing to load.
    """
    logic: Literal["AND", "OR"]
    conditions: List["Condition"] = Field(default_factory=list)


def _condition_tag(value: Any) -> str:
    if isinstance(value, dict):
        return "group" if "logic" in value else "leaf"
    return "group" if isinstance(value, ConditionGroup) else "leaf"


Condition = Annotated[
    Union[
        Annotated[ConditionLeaf, Tag("leaf")],
        Annotated[ConditionGroup, Tag("group")],
    ],
    Discriminator(_condition_tag),
]

ConditionGroup.model_rebuild()


# ============================================================================
# Routing
# ============================================================================

class RoutingAction(str, Enum):
    SKIP_TO_STEP = "skip_to_step"
    JUMP_TO_CHAIN = "jump_to_chain"
    STOP_CHAIN = "stop_chain"


class RoutingRule(BaseModel):
    """
    Condition-guarded control-flow action evaluated after a step finishes

    Attributes:
        condition: Condition tree evaluated against the context
        action: Action to take when the condition holds
        target: Step id (skip_to_step) or chain id (jump_to_chain)
        input_mapping: Templates building the jumped-to chain's input
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    condition: Condition
    action: RoutingAction
    target: Optional[ChainId] = None
    target_name: Optional[str] = Field(None, alias="targetName")
    description: Optional[str] = None
    input_mapping: Optional[Dict[str, Any]] = None


# ============================================================================
# Steps
# ============================================================================

class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


StepType = Literal["module_call", "chain_call"]


class _StepBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique step identifier")
    name: Optional[str] = Field(None, description="Display name")
    condition: Optional[Condition] = Field(
        None, description="Guard; the step is skipped when it evaluates false"
    )
    conditional_routing: List[RoutingRule] = Field(
        default_factory=list, alias="conditionalRouting"
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        """Ensure step ID is valid"""
        if not v or not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError(f"Invalid step ID: {v}. Must be alphanumeric with _ or -")
        return v


class ModuleCallStep(_StepBase):
    """Step that calls a module endpoint"""
    type: Literal["module_call"] = "module_call"
    module: str = Field(..., description="Target module name")
    endpoint: str = Field(..., description="Endpoint path, may contain :params")
    method: HttpMethod = HttpMethod.GET
    params: Dict[str, Any] = Field(default_factory=dict)
    body: Optional[Any] = None
    headers: Dict[str, Any] = Field(default_factory=dict)
    timeout: Optional[int] = Field(None, gt=0, description="Timeout in milliseconds")

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        return v.upper() if isinstance(v, str) else v


class ChainCallStep(_StepBase):
    """Step that runs another chain and returns to this one"""
    type: Literal["chain_call"] = "chain_call"
    chain_id: ChainId
    chain_name: Optional[str] = None
    input_mapping: Dict[str, Any] = Field(default_factory=dict)


def _step_tag(value: Any) -> str:
    if isinstance(value, dict):
        # Untyped steps are module calls
        return value.get("type") or "module_call"
    return getattr(value, "type", "module_call")


ChainStep = Annotated[
    Union[
        Annotated[ModuleCallStep, Tag("module_call")],
        Annotated[ChainCallStep, Tag("chain_call")],
    ],
    Discriminator(_step_tag),
]


# ============================================================================
# Chain Configuration
# ============================================================================

class ChainConfiguration(BaseModel):
    """
    A stored (or ad-hoc) chain definition

    The engine never mutates a configuration during execution.
    """
    id: Optional[ChainId] = None
    user_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    steps: List[ChainStep] = Field(..., min_length=1)
    output_template: Optional[Any] = None
    meta_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, steps):
        """Ensure step IDs are unique and do not shadow context roots"""
        step_ids = [step.id for step in steps]
        if len(step_ids) != len(set(step_ids)):
            raise ValueError("Duplicate step IDs found")
        reserved = [step_id for step_id in step_ids if step_id in RESERVED_ROOTS]
        if reserved:
            raise ValueError(f"Step IDs {reserved} are reserved context names")
        return steps

    def get_step(self, step_id: str):
        """Get step by ID"""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def step_index(self) -> Dict[str, int]:
        """Map step ID to its position in declaration order"""
        return {step.id: i for i, step in enumerate(self.steps)}


# ============================================================================
# Execution Trace
# ============================================================================

class ExecutionStatus(str, Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


class StepRequest(BaseModel):
    """The outbound request actually sent for a module call"""
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    body: Optional[Any] = None
    headers: Optional[Dict[str, Any]] = None


class StepResult(BaseModel):
    """
    Result of executing a single step

    Immutable once recorded; routing diagnostics are attached with model_copy
    before the result is appended to the trace.
    """
    model_config = ConfigDict(frozen=True)

    step_id: str
    step_name: Optional[str] = None
    step_type: StepType = "module_call"
    module: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[HttpMethod] = None
    request: Optional[StepRequest] = None
    response: Any = None
    status_code: Optional[int] = None
    success: bool
    error: Optional[str] = None
    duration_ms: int = 0
    skipped: bool = False
    timestamp: datetime = Field(default_factory=utcnow)
    # Chain calls
    sub_chain_id: Optional[ChainId] = None
    sub_chain_result: Optional["ExecutionResult"] = None
    # Routing diagnostics
    routing_evaluated: bool = False
    routing_matched: Optional[RoutingRule] = None
    routing_matched_index: Optional[int] = None
    routing_action_taken: Optional[str] = None


class ExecutionResult(BaseModel):
    """
    Full trace of one chain execution

    Attributes:
        steps: StepResults in execution order
        output: Rendered output template (None when the run failed)
        status: Terminal state of the run
        error_code: Set only for execution-level failures
        jumped_to_chain_id: Chain that replaced the remaining steps, if any
        jump_result: Execution result of the jumped-to chain
    """
    model_config = ConfigDict(frozen=True)

    execution_id: str
    user_id: Optional[str] = None
    chain_id: Optional[ChainId] = None
    chain_name: Optional[str] = None
    input: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepResult] = Field(default_factory=list)
    output: Any = None
    success: bool
    status: ExecutionStatus
    error: Optional[str] = None
    error_code: Optional[str] = None
    total_duration_ms: int = 0
    started_at: datetime
    completed_at: datetime
    depth: int = 0
    jumped_to_chain_id: Optional[ChainId] = None
    jump_result: Optional["ExecutionResult"] = None

    def get_step_results(self, step_id: str) -> List[StepResult]:
        """Get all results recorded for a step (re-entered steps appear more than once)"""
        return [result for result in self.steps if result.step_id == step_id]

    def get_successful_steps(self) -> List[str]:
        """Get list of step IDs that completed successfully"""
        return [r.step_id for r in self.steps if r.success and not r.skipped]

    def get_failed_steps(self) -> List[str]:
        """Get list of step IDs that failed"""
        return [r.step_id for r in self.steps if not r.success]


StepResult.model_rebuild()
ExecutionResult.model_rebuild()
