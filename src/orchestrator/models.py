"""
src/orchestrator/models.py

Pydantic models for conversation turns, tool schemas and the progress trace.
"""


import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


# -------- Conversation ---------------------------------------------------------
class Role(str, Enum):

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ToolCall(BaseModel):

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class Turn(BaseModel):
    """
    One message in a conversation.

    `tool_name` is only set on assistant turns that carry a tool result back
    into the history; it stays local and is not sent to the model.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_name: Optional[str] = None

    @property
    def is_tool_result(self) -> bool:

        return self.tool_name is not None

    def to_wire(self) -> Dict[str, Any]:
        """Ollama-shaped message dict."""

        out: Dict[str, Any] = {"role": self.role.value, "content": self.content}

        if self.tool_calls:
            out["tool_calls"] = [
                {"function": {"name": tc.name, "arguments": dict(tc.arguments)}}
                for tc in self.tool_calls
            ]

        return out


# -------- Tool schemas ---------------------------------------------------------
class ToolParameter(BaseModel):

    model_config = ConfigDict(frozen=True)

    type: str
    description: str = ""
    enum: Optional[List[Any]] = None
    default: Optional[Any] = None


class ToolSchema(BaseModel):

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: Dict[str, ToolParameter] = Field(default_factory=dict)
    required: FrozenSet[str] = frozenset()

    @model_validator(mode="after")
    def _required_are_declared(self) -> "ToolSchema":

        unknown = sorted(set(self.required) - set(self.parameters))

        if unknown:
            raise ValueError(f"Required parameters not declared on '{self.name}': {unknown}")

        return self

    def to_wire(self) -> Dict[str, Any]:
        """Build the function-tool spec the model server expects."""

        properties: Dict[str, Any] = {}

        for pname, param in self.parameters.items():
            prop: Dict[str, Any] = {"type": param.type, "description": param.description}
            if param.enum is not None:
                prop["enum"] = list(param.enum)
            properties[pname] = prop

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    # keep declaration order so payloads are stable
                    "required": [p for p in self.parameters if p in self.required],
                },
            },
        }


# -------- Progress trace -------------------------------------------------------
class StepKind(str, Enum):

    UNDERSTANDING_INTENT = "understanding_intent"
    SELECTING_TOOL = "selecting_tool"
    EXECUTING_TOOL = "executing_tool"
    PROCESSING_RESULT = "processing_result"
    FORMULATING_RESPONSE = "formulating_response"
    ERROR = "error"


class StepStatus(str, Enum):

    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class StepMetadata(BaseModel):

    model_config = ConfigDict(frozen=True)

    tool_name: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[float] = None


def _utcnow() -> datetime:

    return datetime.now(timezone.utc)


class AgentStep(BaseModel):
    """
    One stage of the pipeline.

    Steps are created Running and move exactly once to a terminal status;
    `complete()` and `fail()` return the frozen terminal copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: StepKind
    status: StepStatus = StepStatus.RUNNING
    message: str
    created_at: datetime = Field(default_factory=_utcnow)
    metadata: StepMetadata = Field(default_factory=StepMetadata)

    @classmethod
    def start(cls, kind: StepKind, message: str, *, tool_name: Optional[str] = None) -> "AgentStep":

        return cls(kind=kind, message=message, metadata=StepMetadata(tool_name=tool_name))

    @property
    def is_terminal(self) -> bool:

        return self.status is not StepStatus.RUNNING

    def _finish(self, status: StepStatus, error: Optional[str] = None) -> "AgentStep":

        if self.is_terminal:
            raise ValueError(f"Step {self.id} ({self.kind.value}) is already {self.status.value}.")

        elapsed = (_utcnow() - self.created_at).total_seconds() * 1000.0
        metadata = self.metadata.model_copy(update={"error": error, "duration_ms": round(elapsed, 3)})

        return self.model_copy(update={"status": status, "metadata": metadata})

    def complete(self) -> "AgentStep":

        return self._finish(StepStatus.COMPLETED)

    def fail(self, error: str) -> "AgentStep":

        return self._finish(StepStatus.ERROR, error=error or "Unknown error occurred")


class AgentProgress(BaseModel):

    model_config = ConfigDict(frozen=True)

    current_step: AgentStep
    previous_steps: List[AgentStep] = Field(default_factory=list)
    is_complete: bool = False

    @model_validator(mode="after")
    def _previous_are_terminal(self) -> "AgentProgress":

        if any(not s.is_terminal for s in self.previous_steps):
            raise ValueError("previous_steps may only hold finished steps.")

        return self

    @property
    def steps(self) -> List[AgentStep]:
        """The whole trace, oldest first."""

        return [*self.previous_steps, self.current_step]


# -------- Result ---------------------------------------------------------------
class ReplyStatus(str, Enum):

    COMPLETE = "complete"
    ERROR = "error"


class ChatReply(BaseModel):

    model_config = ConfigDict(frozen=True)

    text: str
    status: ReplyStatus
    final_progress: AgentProgress
