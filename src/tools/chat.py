"""
src/tools/chat.py - conversation housekeeping

clear_chat wipes the history it was built over. Safe to call repeatedly.
"""


from typing import Any, Callable, Dict

from context.history import ConversationHistory
from orchestrator.models import ToolSchema
from orchestrator.prompts import CLEAR_CONFIRMATION


SCHEMA = ToolSchema(
    name="clear_chat",
    description="Clears the current chat history and conversation",
)


def make_clear_chat(history: ConversationHistory) -> Callable[[], Dict[str, Any]]:

    def clear_chat() -> Dict[str, Any]:

        history.clear()

        return {"success": True, "message": CLEAR_CONFIRMATION}

    return clear_chat
