"""
src/tools/defaults.py

The tool set the chat app ships with.
"""


from context.history import ConversationHistory
from tools import capabilities, chat, weather
from tools.registry import ToolRegistry


def build_default_registry(history: ConversationHistory) -> ToolRegistry:
    """
    Register weather, capabilities and clear-chat.

    Capability listings and the clear confirmation go straight back to the
    user, so both are registered with return_direct.
    """

    registry = ToolRegistry()
    registry.register(weather.SCHEMA, weather.get_current_weather)
    registry.register(
        capabilities.SCHEMA,
        capabilities.make_list_capabilities(registry),
        return_direct=True,
    )
    registry.register(
        chat.SCHEMA,
        chat.make_clear_chat(history),
        return_direct=True,
        resets_history=True,
    )

    return registry
