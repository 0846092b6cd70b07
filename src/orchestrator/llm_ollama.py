"""
src/orchestrator/llm_ollama.py

Gateway for Ollama's native chat API (POST /api/chat).
- send(): one non-streaming request, one assistant Turn back
- stream(): same request with stream=true; newline-delimited JSON fragments
  are fed to a callback and folded into one Turn
"""


import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from config import DEFAULT_MODEL, OLLAMA_BASE_URL, REQUEST_TIMEOUT
from orchestrator.errors import ProtocolFailure, TransportFailure
from orchestrator.gateway import ModelGateway
from orchestrator.models import Role, ToolCall, ToolSchema, Turn


logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"
TAGS_PATH = "/api/tags"


def parse_tool_calls(raw: Any) -> List[ToolCall]:
    """
    Normalize tool calls from a response message.
    Arguments may come as an object or as a JSON-encoded string.
    """

    if not raw:
        return []
    if not isinstance(raw, list):
        raise ProtocolFailure(f"tool_calls must be a list, got {type(raw).__name__}")

    out = []
    for tc in raw:
        fn = tc.get("function") if isinstance(tc, dict) else None
        if not isinstance(fn, dict) or not isinstance(fn.get("name"), str) or not fn["name"]:
            raise ProtocolFailure(f"Malformed tool call: {tc!r}")

        args = fn.get("arguments") or {}
        if isinstance(args, str):
            try:
                args = json.loads(args or "{}")
            except json.JSONDecodeError as e:
                raise ProtocolFailure(f"Tool call arguments for '{fn['name']}' are not valid JSON") from e
        if not isinstance(args, dict):
            raise ProtocolFailure(f"Tool call arguments for '{fn['name']}' must be an object")

        out.append(ToolCall(name=fn["name"], arguments=args))

    return out

def parse_message(message: Any) -> Turn:
    """Turn an Ollama `message` object into a Turn."""

    if not isinstance(message, dict):
        raise ProtocolFailure("Response has no 'message' object")

    try:
        return Turn(
            role=Role(message.get("role") or Role.ASSISTANT.value),
            content=message.get("content") or "",
            tool_calls=parse_tool_calls(message.get("tool_calls")),
        )
    except (ValueError, ValidationError) as e:
        raise ProtocolFailure(f"Unreadable message: {e}") from e


class OllamaGateway(ModelGateway):

    def __init__(
            self,
            *,
            base_url: str = OLLAMA_BASE_URL,
            model: str = DEFAULT_MODEL,
            timeout: Optional[float] = REQUEST_TIMEOUT,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):

        super().__init__(model=model)
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:

        await self._client.aclose()

    def _payload(self, history: Sequence[Turn], tools: Optional[Sequence[ToolSchema]], stream: bool) -> Dict[str, Any]:

        self._check_request(history, tools)

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [t.to_wire() for t in history],
            "stream": stream,
        }
        if tools:
            payload["tools"] = [s.to_wire() for s in tools]

        return payload

    async def send(self, history: Sequence[Turn], tools: Optional[Sequence[ToolSchema]] = None) -> Turn:
        """
        One non-streaming chat call.

        Raises:
            TransportFailure: connection problems or a non-2xx status.
            ProtocolFailure: body is not JSON or has no usable `message`.
        """

        payload = self._payload(history, tools, stream=False)

        try:
            resp = await self._client.post(CHAT_PATH, json=payload)
        except httpx.TransportError as e:
            logger.error("Ollama request to %s failed: %s", self.base_url, e)
            raise TransportFailure(f"Could not reach model server at {self.base_url}: {e}") from e

        if resp.is_error:
            logger.error("Ollama returned HTTP %s", resp.status_code)
            raise TransportFailure(f"HTTP error! status: {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProtocolFailure("Response body is not valid JSON") from e

        if not isinstance(data, dict):
            raise ProtocolFailure("Response body must be a JSON object")

        return parse_message(data.get("message"))

    async def stream(
            self,
            history: Sequence[Turn],
            tools: Optional[Sequence[ToolSchema]] = None,
            on_chunk: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> Turn:
        """
        Streaming chat call. Every fragment is handed to `on_chunk` as it
        arrives; the returned Turn holds the concatenated content and any tool
        calls. The stream must end with a fragment whose `done` is true.
        """

        payload = self._payload(history, tools, stream=True)
        parts: List[str] = []
        tool_calls: List[ToolCall] = []
        role = Role.ASSISTANT
        done = False

        try:
            async with self._client.stream("POST", CHAT_PATH, json=payload) as resp:
                if resp.is_error:
                    await resp.aread()
                    logger.error("Ollama stream returned HTTP %s", resp.status_code)
                    raise TransportFailure(f"HTTP error! status: {resp.status_code}", status_code=resp.status_code)

                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        fragment = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise ProtocolFailure(f"Stream fragment is not valid JSON: {line[:80]!r}") from e
                    if not isinstance(fragment, dict):
                        raise ProtocolFailure("Stream fragment must be a JSON object")

                    if on_chunk is not None:
                        on_chunk(fragment)

                    if "message" in fragment:
                        turn = parse_message(fragment["message"])
                        role = turn.role
                        parts.append(turn.content)
                        tool_calls.extend(turn.tool_calls)

                    if fragment.get("done"):
                        done = True
                        break
        except httpx.TransportError as e:
            logger.error("Ollama stream to %s failed: %s", self.base_url, e)
            raise TransportFailure(f"Could not reach model server at {self.base_url}: {e}") from e

        if not done:
            raise ProtocolFailure("No complete response received")

        return Turn(role=role, content="".join(parts), tool_calls=tool_calls)

    async def list_models(self) -> List[str]:
        """Names of the models the server has pulled."""

        try:
            resp = await self._client.get(TAGS_PATH)
        except httpx.TransportError as e:
            raise TransportFailure(f"Could not reach model server at {self.base_url}: {e}") from e

        if resp.is_error:
            raise TransportFailure(f"HTTP error! status: {resp.status_code}", status_code=resp.status_code)

        try:
            models = resp.json().get("models", [])
            return [m["name"] for m in models]
        except (ValueError, AttributeError, KeyError, TypeError) as e:
            raise ProtocolFailure("Unexpected /api/tags response") from e
