from __future__ import annotations

import httpx
import pytest

from app import apply_reply, render_progress, run_turn, server_status
from fakes import ScriptedGateway
from orchestrator.llm_ollama import OllamaGateway
from orchestrator.models import AgentProgress, AgentStep, ChatReply, ReplyStatus, Role, StepKind
from orchestrator.router import AgentOrchestrator


def _progress(*steps, complete=False):
    return AgentProgress(current_step=steps[-1], previous_steps=list(steps[:-1]), is_complete=complete)


def test_render_progress_marks_each_step():
    done = AgentStep.start(StepKind.UNDERSTANDING_INTENT, "Understanding your request...").complete()
    running = AgentStep.start(StepKind.EXECUTING_TOOL, "Using get_current_weather...", tool_name="get_current_weather")

    assert render_progress(_progress(done, running)) == (
        "- ✅ Understanding your request...\n"
        "- ⏳ Using get_current_weather..."
    )


def test_render_progress_shows_errors():
    failed = AgentStep.start(StepKind.ERROR, "An error occurred while processing your request").fail("HTTP error! status: 500")

    assert render_progress(_progress(failed, complete=True)) == (
        "- ❌ An error occurred while processing your request (`HTTP error! status: 500`)"
    )


def test_render_progress_empty():
    assert render_progress(None) == ""


@pytest.fixture
def reply():
    step = AgentStep.start(StepKind.FORMULATING_RESPONSE, "Preparing response...").complete()
    return ChatReply(text="Hi!", status=ReplyStatus.COMPLETE, final_progress=_progress(step, complete=True))


def test_apply_reply_appends(reply):
    chat = [{"role": "user", "content": "Hello"}]

    assert apply_reply(chat, reply, history_len=2) == [
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "Hi!"},
    ]
    assert len(chat) == 1


def test_apply_reply_after_reset_shows_only_the_reply(reply):
    chat = [{"role": "user", "content": "Hello"}, {"role": "assistant", "content": "Hi!"}]

    assert apply_reply(chat, reply, history_len=0) == [{"role": "assistant", "content": "Hi!"}]


# -------- run_turn -------------------------------------------------------------

async def collect(agent, message, chat):
    return [update async for update in run_turn(agent, message, chat)]


@pytest.mark.asyncio
async def test_turn_locks_clear_button_until_reply():
    agent = AgentOrchestrator(ScriptedGateway(["false", "Hi!"]))

    updates = await collect(agent, "Hello", [])

    box_first, clear_first, chat_first, _ = updates[0]
    assert box_first["interactive"] is False
    assert clear_first["interactive"] is False
    assert chat_first == [{"role": "user", "content": "Hello"}]

    for _, clear_update, _, _ in updates[1:-1]:
        assert "interactive" not in clear_update

    box_last, clear_last, chat_last, trace = updates[-1]
    assert box_last["interactive"] is True
    assert clear_last["interactive"] is True
    assert chat_last == [{"role": "user", "content": "Hello"}, {"role": "assistant", "content": "Hi!"}]
    assert "✅ Preparing response..." in trace
    assert [t.role for t in agent.history] == [Role.USER, Role.ASSISTANT]


@pytest.mark.asyncio
async def test_blank_message_leaves_controls_alone():
    agent = AgentOrchestrator(ScriptedGateway())

    updates = await collect(agent, "   ", [])

    assert len(updates) == 1
    assert "interactive" not in updates[0][1]
    assert agent.gateway.calls == []


# -------- server_status --------------------------------------------------------

def ollama_with(handler) -> OllamaGateway:
    return OllamaGateway(base_url="http://ollama.test", model="llama3.2", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_status_when_model_is_pulled():
    gateway = ollama_with(lambda request: httpx.Response(200, json={"models": [{"name": "llama3.2:latest"}]}))

    async with gateway:
        assert (await server_status(gateway)).startswith("✅")


@pytest.mark.asyncio
async def test_status_when_model_is_missing():
    gateway = ollama_with(lambda request: httpx.Response(200, json={"models": [{"name": "qwen2.5:7b"}]}))

    async with gateway:
        status = await server_status(gateway)

    assert "`llama3.2` is not pulled" in status


@pytest.mark.asyncio
async def test_status_when_server_is_down():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with ollama_with(handler) as gateway:
        assert "unreachable" in await server_status(gateway)


@pytest.mark.asyncio
async def test_status_for_other_backends():
    assert "OpenAI-compatible" in await server_status(ScriptedGateway())
