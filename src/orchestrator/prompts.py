"""
src/orchestrator/prompts.py

System prompts for the classification and tool-selection calls, plus the
fixed user-facing strings.
"""


from typing import Dict, Iterable

from orchestrator.models import StepKind, ToolSchema


APOLOGY = (
    "I apologize, but I encountered an error while processing your request. "
    "Please try again."
)

CLEAR_CONFIRMATION = "Chat history has been cleared successfully."

STEP_MESSAGES: Dict[StepKind, str] = {
    StepKind.UNDERSTANDING_INTENT: "Understanding your request...",
    StepKind.SELECTING_TOOL: "Determining the best approach...",
    StepKind.EXECUTING_TOOL: "Using {tool_name}...",
    StepKind.PROCESSING_RESULT: "Processing results...",
    StepKind.FORMULATING_RESPONSE: "Preparing response...",
    StepKind.ERROR: "An error occurred while processing your request",
}


CLASSIFY_TEMPLATE = """You decide whether a user's message STRICTLY requires one of our available tools.
Our available tools are:
{tools}

Rules:
1. Respond 'true' only if the request SPECIFICALLY needs one of the tools above.
2. Respond 'false' for general knowledge questions, even if you know the answer.
3. Respond 'false' for small talk or topics no tool covers.
4. When in doubt, respond 'false'.
5. ANY question about weather or temperature for ANY location needs get_current_weather.
6. ANY question about your capabilities or features needs list_capabilities.
7. ANY request to clear, erase or reset the conversation needs clear_chat.

Examples:
"What's the weather in Paris?" -> true
"How's the weather in Tokyo?" -> true
"Clear this conversation" -> true
"What can you do?" -> true
"How are you?" -> false
"What is Bitcoin?" -> false
"What's the capital of France?" -> false

Respond ONLY with 'true' or 'false'. No other text."""


SELECT_TOOL = """You select the most appropriate tool for the user's latest request.

Rules:
1. For ANY command about clearing, erasing or resetting the chat, use clear_chat.
2. For ANY question about capabilities ("what can you do?", "show me your features"), use list_capabilities.
3. For ANY question about weather, temperature, forecast or climate for ANY location, use get_current_weather.
   Always extract the location from the question. Use 'celsius' unless 'fahrenheit' is asked for.
4. If no tool fits, answer the user's question directly."""


def classification_prompt(schemas: Iterable[ToolSchema]) -> str:
    """Render the yes/no prompt with the registered tools listed."""

    listing = "\n".join(f"- {s.name}: {s.description}" for s in schemas)

    return CLASSIFY_TEMPLATE.format(tools=listing or "- (none)")

def step_message(kind: StepKind, **fields: str) -> str:

    return STEP_MESSAGES[kind].format(**fields)
