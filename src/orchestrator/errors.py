"""
src/orchestrator/errors.py

Failure taxonomy for the agent pipeline.
"""


from typing import Optional


class AgentError(Exception):
    """Base class for every failure the agent pipeline knows about."""


# -------- Gateway --------------------------------------------------------------
class GatewayError(AgentError):
    """The model server call did not produce a usable reply."""


class TransportFailure(GatewayError):
    """Endpoint unreachable, timed out, or answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):

        super().__init__(message)
        self.status_code = status_code


class ProtocolFailure(GatewayError):
    """The response body could not be turned into a Turn."""


# -------- Tools ----------------------------------------------------------------
class ToolError(AgentError):
    pass


class UnknownTool(ToolError):

    def __init__(self, name: str, suggestion: Optional[str] = None):

        message = f"Tool '{name}' not found"
        if suggestion:
            message += f" (did you mean '{suggestion}'?)"

        super().__init__(message)
        self.name = name
        self.suggestion = suggestion


class HandlerFailure(ToolError):
    """A tool's handler failed, or its arguments did not match the schema."""

    def __init__(self, tool_name: str, message: str):

        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name


class DuplicateToolName(ToolError):
    """Two tools registered under one name. Startup misconfiguration."""

    def __init__(self, name: str):

        super().__init__(f"Tool '{name}' is already registered")
        self.name = name
