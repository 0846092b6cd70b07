"""
src/tools/capabilities.py - "what can you do?"

The handler needs the registry it lives in so the listing always matches
what is actually registered; make_list_capabilities() closes over it.
"""


from typing import Any, Callable, Dict, List

from orchestrator.models import ToolSchema
from tools.registry import ToolRegistry


SCHEMA = ToolSchema(
    name="list_capabilities",
    description="Lists all available tools and capabilities of the AI assistant",
)

INTRO = "I can help you with various tasks using natural language processing and specific tools."

GENERAL_CAPABILITIES: List[str] = [
    "Natural language understanding and conversation",
    "Answering questions and providing information",
    "Text analysis and processing",
    "Problem-solving and reasoning",
    "Creative writing and text generation",
]


def make_list_capabilities(registry: ToolRegistry) -> Callable[[], Dict[str, Any]]:

    def list_capabilities() -> Dict[str, Any]:

        return {
            "success": True,
            "message": INTRO,
            "data": {
                "general_capabilities": list(GENERAL_CAPABILITIES),
                "available_tools": registry.describe(),
            },
        }

    return list_capabilities
