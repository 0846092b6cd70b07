"""
src/orchestrator/llm_openai.py

Gateway for OpenAI-compatible chat completion servers (Ollama's /v1, LM Studio,
vLLM). Same contract as the native Ollama gateway.
- call_model(): low-level request, returns the raw response
- extract_tool_calls(): normalize tool calls from a response choice
"""


import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from config import DEFAULT_MODEL, OLLAMA_BASE_URL, REQUEST_TIMEOUT
from orchestrator.errors import ProtocolFailure, TransportFailure
from orchestrator.gateway import ModelGateway
from orchestrator.models import Role, ToolCall, ToolSchema, Turn


logger = logging.getLogger(__name__)


def to_openai_messages(history: Sequence[Turn]) -> List[Dict[str, Any]]:
    """Convert turns to chat-completions messages."""

    out = []

    for turn in history:
        msg: Dict[str, Any] = {"role": turn.role.value, "content": turn.content}
        if turn.tool_calls:
            msg["tool_calls"] = [
                {
                    "id": f"call_{idx}",
                    "type": "function",
                    "function": {"name": tc.name, "arguments": json.dumps(tc.arguments, ensure_ascii=False)},
                }
                for idx, tc in enumerate(turn.tool_calls)
            ]
        out.append(msg)

    return out

def extract_tool_calls(choice) -> List[ToolCall]:
    """
    Normalize tool calls from a response choice.
    Unparseable arguments are a protocol failure, not an empty call.
    """

    out = []
    tcs = getattr(choice.message, "tool_calls", None)

    if not tcs:
        return out

    for tc in tcs:
        if tc.type != "function" or not tc.function:
            continue
        name = tc.function.name
        try:
            args = json.loads(tc.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ProtocolFailure(f"Tool call arguments for '{name}' are not valid JSON") from e
        if not isinstance(args, dict):
            raise ProtocolFailure(f"Tool call arguments for '{name}' must be an object")
        out.append(ToolCall(name=name, arguments=args))

    return out


class OpenAIGateway(ModelGateway):

    def __init__(
            self,
            *,
            base_url: str = OLLAMA_BASE_URL,
            model: str = DEFAULT_MODEL,
            api_key: str = "ollama",
            timeout: Optional[float] = REQUEST_TIMEOUT,
            temperature: float = 0.2,
    ):

        super().__init__(model=model)
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        # max_retries=0: a failed call goes straight back to the caller
        self._client = AsyncOpenAI(
            base_url=f"{self.base_url}/v1",
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    async def aclose(self) -> None:

        await self._client.close()

    async def call_model(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None):
        """
        Low-level call to chat completions with optional tool specs.
        Returns the raw response object.
        """

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        return await self._client.chat.completions.create(**kwargs)

    async def send(self, history: Sequence[Turn], tools: Optional[Sequence[ToolSchema]] = None) -> Turn:

        self._check_request(history, tools)
        specs = [s.to_wire() for s in tools] if tools else None

        try:
            resp = await self.call_model(to_openai_messages(history), tools=specs)
        except openai.APIStatusError as e:
            logger.error("Chat completion returned HTTP %s", e.status_code)
            raise TransportFailure(f"HTTP error! status: {e.status_code}", status_code=e.status_code) from e
        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass
            logger.error("Chat completion request to %s failed: %s", self.base_url, e)
            raise TransportFailure(f"Could not reach model server at {self.base_url}: {e}") from e

        choices = getattr(resp, "choices", None)
        if not choices:
            raise ProtocolFailure("Response has no choices")

        choice = choices[0]
        return Turn(
            role=Role.ASSISTANT,
            content=choice.message.content or "",
            tool_calls=extract_tool_calls(choice),
        )
