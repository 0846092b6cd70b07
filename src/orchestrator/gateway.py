"""
src/orchestrator/gateway.py

Model gateway contract: send a conversation (and optional tool schemas) to
the model server, get one assistant Turn back.
"""


from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from config import Backend, DEFAULT_BACKEND
from orchestrator.models import Role, ToolSchema, Turn


class ModelGateway(ABC):
    """
    Boundary to the remote inference service.

    Implementations raise TransportFailure when the endpoint is unreachable or
    answers with a non-success status, and ProtocolFailure when the body can't
    be read as a Turn. Nothing is retried.
    """

    def __init__(self, *, model: str):

        self.model = model

    @abstractmethod
    async def send(self, history: Sequence[Turn], tools: Optional[Sequence[ToolSchema]] = None) -> Turn:
        pass

    async def aclose(self) -> None:
        pass

    async def __aenter__(self) -> "ModelGateway":

        return self

    async def __aexit__(self, *exc_info: Any) -> None:

        await self.aclose()

    # -------- Helpers ----------------------------------------------------------
    @staticmethod
    def _check_request(history: Sequence[Turn], tools: Optional[Sequence[ToolSchema]]) -> None:
        """Reject calls that break the gateway's input contract."""

        if not history:
            raise ValueError("Cannot send an empty conversation.")

        last = history[-1]
        if last.role is not Role.USER and not last.is_tool_result:
            raise ValueError(f"Conversation must end with a user or tool-result turn, not '{last.role.value}'.")

        names = [t.name for t in tools or []]
        if len(names) != len(set(names)):
            raise ValueError(f"Tool names must be unique: {names}")


def make_gateway(backend: Optional[Backend] = None, **kwargs: Any) -> ModelGateway:
    """Return a gateway for the configured backend."""

    resolved = Backend(backend or DEFAULT_BACKEND)

    if resolved is Backend.OLLAMA:
        from orchestrator.llm_ollama import OllamaGateway
        return OllamaGateway(**kwargs)
    if resolved is Backend.OPENAI:
        from orchestrator.llm_openai import OpenAIGateway
        return OpenAIGateway(**kwargs)

    raise ValueError(f"Unknown backend '{backend}'.")
