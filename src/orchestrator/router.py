"""
src/orchestrator/router.py

Router: takes one user message through the agent pipeline and returns a tidy
ChatReply with the full progress trace.

    understanding_intent -> [selecting_tool -> executing_tool* -> processing_result]
                         -> formulating_response

Failures at any stage become an error reply; the collaborator never sees the
raw exception. History mutated before the failure is kept as is.

One call at a time per orchestrator: the history is shared across awaits.
"""


import json
import logging
from typing import Callable, List, Optional, Sequence

from context.history import ConversationHistory
from orchestrator import prompts
from orchestrator.formatting import format_response_text
from orchestrator.gateway import ModelGateway
from orchestrator.models import (
    AgentProgress,
    AgentStep,
    ChatReply,
    ReplyStatus,
    Role,
    StepKind,
    ToolCall,
    Turn,
)
from tools.defaults import build_default_registry
from tools.registry import ToolRegistry


logger = logging.getLogger(__name__)

ProgressObserver = Callable[[AgentProgress], None]


# -------- Progress trace -------------------------------------------------------
class _Trace:
    """Tracks the running step and the finished ones, and notifies the observer."""

    def __init__(self, on_progress: Optional[ProgressObserver]):

        self._notify = on_progress
        self.finished: List[AgentStep] = []
        self.current: Optional[AgentStep] = None
        self.observer_failed = False

    def _emit(self, progress: AgentProgress) -> None:

        if self._notify is None:
            return
        # errors raised by the observer belong to the caller, see handle_user_turn
        self.observer_failed = True
        self._notify(progress)
        self.observer_failed = False

    def start(self, kind: StepKind, *, tool_name: Optional[str] = None) -> AgentStep:

        message = prompts.step_message(kind, tool_name=tool_name or "")
        self.current = AgentStep.start(kind, message, tool_name=tool_name)
        logger.debug("step %s started", kind.value)
        self._emit(AgentProgress(current_step=self.current, previous_steps=list(self.finished)))

        return self.current

    def complete(self) -> AgentStep:

        step = self.current.complete()
        self.finished.append(step)
        self.current = None
        logger.debug("step %s completed in %.1f ms", step.kind.value, step.metadata.duration_ms)

        return step

    def fail(self, error: str) -> AgentProgress:
        """Close the running step (if any) as Error, add the terminal Error step, emit."""

        if self.current is not None:
            self.finished.append(self.current.fail(error))
            self.current = None

        error_step = AgentStep.start(StepKind.ERROR, prompts.step_message(StepKind.ERROR)).fail(error)
        progress = AgentProgress(current_step=error_step, previous_steps=list(self.finished), is_complete=True)
        self.finished.append(error_step)
        self._emit(progress)

        return progress

    def finish(self) -> AgentProgress:

        progress = AgentProgress(
            current_step=self.finished[-1],
            previous_steps=self.finished[:-1],
            is_complete=True,
        )
        self._emit(progress)

        return progress


# -------- Orchestrate ----------------------------------------------------------
class AgentOrchestrator:
    """
    Owns one conversation: its history, the gateway used to reach the model,
    and the tools the model may call.

    If no registry is given, the default tool set is built over this
    orchestrator's own history (so clear_chat clears the right conversation).
    """

    def __init__(
            self,
            gateway: ModelGateway,
            registry: Optional[ToolRegistry] = None,
            history: Optional[ConversationHistory] = None,
    ):

        self.gateway = gateway
        self._history = history if history is not None else ConversationHistory()
        self.registry = registry if registry is not None else build_default_registry(self._history)

    @property
    def history(self) -> ConversationHistory:

        return self._history

    def reset(self) -> str:
        """Clear the conversation. Idempotent."""

        self._history.clear()
        logger.info("Conversation history cleared")

        return prompts.CLEAR_CONFIRMATION

    async def handle_user_turn(self, text: str, on_progress: Optional[ProgressObserver] = None) -> ChatReply:
        """
        Entry point: run the pipeline for one user message.

        `on_progress` is called synchronously with a fresh AgentProgress
        snapshot at every step transition, the last one with is_complete=True.
        """

        trace = _Trace(on_progress)

        try:
            reply_text = await self._run(text, trace)
        except Exception as e:
            if trace.observer_failed:
                raise
            error = str(e) or type(e).__name__
            where = trace.current.kind.value if trace.current else "pipeline"
            logger.error("Agent pipeline failed during %s: %s", where, error, exc_info=True)
            progress = trace.fail(error)
            return ChatReply(text=prompts.APOLOGY, status=ReplyStatus.ERROR, final_progress=progress)

        return ChatReply(text=reply_text, status=ReplyStatus.COMPLETE, final_progress=trace.finish())

    # -------- Stages -----------------------------------------------------------
    async def _run(self, text: str, trace: _Trace) -> str:

        trace.start(StepKind.UNDERSTANDING_INTENT)
        self._history.append(Turn(role=Role.USER, content=text))
        needs_tools = await self._needs_tools(text)
        trace.complete()

        direct: Optional[str] = None    # tool result that is the final reply
        pending: Optional[Turn] = None  # model reply not yet in history

        if needs_tools:
            trace.start(StepKind.SELECTING_TOOL)
            selection = await self.gateway.send(
                [Turn(role=Role.SYSTEM, content=prompts.SELECT_TOOL), *self._history.messages],
                tools=self.registry.all_schemas(),
            )
            trace.complete()

            if selection.tool_calls:
                direct = await self._execute_tool_calls(selection.tool_calls, trace)
                if direct is None:
                    trace.start(StepKind.PROCESSING_RESULT)
                    trace.complete()
            else:
                # classifier said yes, model answered directly: use that answer
                logger.info("Tool selection returned no tool calls; using the reply as is")
                pending = selection

        trace.start(StepKind.FORMULATING_RESPONSE)
        if direct is None:
            if pending is None:
                pending = await self.gateway.send(self._history.messages)
            self._history.append(pending)
            direct = pending.content
        trace.complete()

        return format_response_text(direct)

    async def _needs_tools(self, text: str) -> bool:
        """Yes/no classification on a throwaway conversation."""

        prompt = prompts.classification_prompt(self.registry.all_schemas())
        reply = await self.gateway.send([
            Turn(role=Role.SYSTEM, content=prompt),
            Turn(role=Role.USER, content=text),
        ])
        decision = "true" in reply.content.lower()
        logger.debug("Tool classification: %r -> %s", reply.content, decision)

        return decision

    async def _execute_tool_calls(self, calls: Sequence[ToolCall], trace: _Trace) -> Optional[str]:
        """
        Run tool calls strictly in order, folding each result into history.
        Returns the serialized result of the first return_direct tool, if any;
        later calls are skipped.
        """

        for call in calls:
            trace.start(StepKind.EXECUTING_TOOL, tool_name=call.name)
            tool = self.registry.lookup(call.name)
            result = await self.registry.execute(call.name, call.arguments)
            payload = json.dumps(result, ensure_ascii=False, default=str)

            # a reset leaves the history empty; its own result is not folded back in
            if not tool.resets_history:
                self._history.append(Turn(role=Role.ASSISTANT, content=payload, tool_name=call.name))
            trace.complete()
            logger.info("Tool %s executed", call.name)

            if tool.return_direct:
                return payload

        return None
