"""
src/app.py

Gradio chat front-end. One conversation per process; the input box and the
Clear button are disabled while a reply is pending, and both events share one
concurrency group, so only one call into the agent is ever in flight.
"""


import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import gradio as gr

from config import DEFAULT_BACKEND, DEFAULT_MODEL, OLLAMA_BASE_URL, setup_logging
from orchestrator.errors import GatewayError
from orchestrator.gateway import ModelGateway, make_gateway
from orchestrator.llm_ollama import OllamaGateway
from orchestrator.models import AgentProgress, ChatReply, StepStatus
from orchestrator.router import AgentOrchestrator


logger = logging.getLogger(__name__)

APP_TITLE = "Local Agent Chat"
APP_DESC = (
    f"Chatting with `{DEFAULT_MODEL}` via {DEFAULT_BACKEND.value} at {OLLAMA_BASE_URL}. "
    "Try: 'What's the weather in Paris?', 'What can you do?' or 'Clear this conversation'."
)
TURN_GROUP = "agent-turn"

STATUS_MARKS = {
    StepStatus.RUNNING: "⏳",
    StepStatus.COMPLETED: "✅",
    StepStatus.ERROR: "❌",
}

Messages = List[Dict[str, Any]]
TurnUpdate = Tuple[Dict[str, Any], Dict[str, Any], Messages, str]


def render_progress(progress: Optional[AgentProgress]) -> str:
    """Markdown list of the steps in a progress snapshot, oldest first."""

    if progress is None:
        return ""

    lines = []
    for step in progress.steps:
        line = f"- {STATUS_MARKS[step.status]} {step.message}"
        if step.metadata.error:
            line += f" (`{step.metadata.error}`)"
        lines.append(line)

    return "\n".join(lines)

def apply_reply(chat: Messages, reply: ChatReply, history_len: int) -> Messages:
    """Append the reply; a cleared conversation also clears the visible chat."""

    bubble = {"role": "assistant", "content": reply.text}

    if history_len == 0:
        return [bubble]

    return chat + [bubble]

async def server_status(gateway: ModelGateway) -> str:
    """One-line connection check shown under the title."""

    if not isinstance(gateway, OllamaGateway):
        return f"Using `{gateway.model}` through an OpenAI-compatible endpoint."

    try:
        models = await gateway.list_models()
    except GatewayError as e:
        logger.warning("Model server check failed: %s", e)
        return f"❌ Model server unreachable at {gateway.base_url}"

    # tags come back as "name:tag"
    if not any(m == gateway.model or m.split(":")[0] == gateway.model for m in models):
        return f"⚠️ `{gateway.model}` is not pulled on {gateway.base_url} ({len(models)} models available)"

    return f"✅ Connected to {gateway.base_url}, `{gateway.model}` is available"


# -------- Turn -----------------------------------------------------------------
async def run_turn(agent: AgentOrchestrator, message: str, chat: Messages) -> AsyncIterator[TurnUpdate]:
    """
    Run one turn, yielding (textbox, clear button, chat, trace) updates.

    The textbox and the Clear button stay disabled from the first update until
    the reply is in, so a reset can never land in the middle of a turn.
    """

    message = (message or "").strip()
    if not message:
        yield gr.update(), gr.update(), chat, gr.update()
        return

    chat = chat + [{"role": "user", "content": message}]
    snapshots: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(agent.handle_user_turn(message, snapshots.put_nowait))

    yield gr.update(value="", interactive=False), gr.update(interactive=False), chat, ""

    try:
        while True:
            getter = asyncio.ensure_future(snapshots.get())
            await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter.done():
                yield gr.update(), gr.update(), chat, render_progress(getter.result())
                continue
            getter.cancel()
            break

        reply = task.result()
    except BaseException:
        task.cancel()
        raise

    chat = apply_reply(chat, reply, len(agent.history))
    yield gr.update(interactive=True), gr.update(interactive=True), chat, render_progress(reply.final_progress)


# -------- UI -------------------------------------------------------------------
def app(agent: Optional[AgentOrchestrator] = None):

    agent = agent or AgentOrchestrator(make_gateway())

    async def respond(message: str, chat: Messages):

        async for update in run_turn(agent, message, chat):
            yield update

    def clear():

        return [{"role": "assistant", "content": agent.reset()}], ""

    async def status():

        return await server_status(agent.gateway)

    with gr.Blocks(title=APP_TITLE) as demo:
        gr.Markdown(f"# {APP_TITLE}")
        gr.Markdown(APP_DESC)
        status_line = gr.Markdown()

        with gr.Row():
            with gr.Column(scale=3):
                chatbot = gr.Chatbot(type="messages", height=480, label="Chat")
                box = gr.Textbox(placeholder="Type a message and press Enter", show_label=False)
                clear_btn = gr.Button("Clear", variant="secondary")
            with gr.Column(scale=1):
                gr.Markdown("### Progress")
                trace = gr.Markdown()

        box.submit(
            respond,
            inputs=[box, chatbot],
            outputs=[box, clear_btn, chatbot, trace],
            concurrency_id=TURN_GROUP,
            concurrency_limit=1,
        )
        clear_btn.click(
            clear,
            inputs=None,
            outputs=[chatbot, trace],
            concurrency_id=TURN_GROUP,
            concurrency_limit=1,
        )
        demo.load(status, inputs=None, outputs=status_line)

    return demo


if __name__ == "__main__":

    setup_logging()
    app().launch()

# EOF
