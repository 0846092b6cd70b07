"""
src/tools/weather.py - current weather lookup

Demo tool: returns a fixed payload for any location. The unit only changes
the reported temperature (22 °C / 72 °F).
"""


from typing import Any, Dict

from config import DEFAULT_UNIT, TemperatureUnit
from orchestrator.models import ToolParameter, ToolSchema


SCHEMA = ToolSchema(
    name="get_current_weather",
    description="Get the current weather for a location",
    parameters={
        "location": ToolParameter(
            type="string",
            description="The location to get the weather for, e.g. 'San Francisco, CA'",
        ),
        "format": ToolParameter(
            type="string",
            description="The format to return the weather in, e.g. 'celsius' or 'fahrenheit'",
            enum=[u.value for u in TemperatureUnit],
            default=DEFAULT_UNIT.value,
        ),
    },
    required=frozenset({"location"}),
)


def get_current_weather(*, location: str, format: str = DEFAULT_UNIT.value) -> Dict[str, Any]:
    """
    Return the weather for `location`.

    Returns:
        {"success": True, "data": {"location", "temperature", "unit", "condition"}}
    """

    unit = TemperatureUnit(format)

    return {
        "success": True,
        "data": {
            "location": location.strip(),
            "temperature": 22 if unit is TemperatureUnit.CELSIUS else 72,
            "unit": unit.value,
            "condition": "sunny",
        },
    }
