"""
src/orchestrator/formatting.py

Best-effort cleanup of reply text before it reaches the UI. Tool results are
JSON strings; model replies sometimes come back JSON-quoted. Nothing here may
fail the pipeline: on any surprise the original text is returned unchanged.
"""


import json
import logging
from typing import Any, Dict, List, Union


logger = logging.getLogger(__name__)

_NOT_JSON = object()


def _bullet(line: str) -> str:
    """'name: description' -> '- **name**: description'; plain lines just get a dash."""

    name, sep, rest = line.partition(":")

    if not sep:
        return f"- {line.strip()}"

    return f"- **{name.strip()}**:{rest}"

def _lines(value: Union[str, List[Any]]) -> List[str]:

    items = value.split("\n") if isinstance(value, str) else [str(v) for v in value]

    return [i for i in items if i.strip()]

def is_capability_listing(payload: Any) -> bool:

    data = payload.get("data") if isinstance(payload, dict) else None

    return isinstance(data, dict) and bool(data.get("general_capabilities")) and bool(data.get("available_tools"))

def format_capabilities(payload: Dict[str, Any]) -> str:
    """Render a list_capabilities result as markdown bullets."""

    data = payload["data"]
    general = "\n".join(_bullet(c) for c in _lines(data["general_capabilities"]))
    tools = "\n".join(_bullet(t) for t in _lines(data["available_tools"]))
    intro = payload.get("message") or ""

    return f"{intro}\n\n**General Capabilities:**\n{general}\n\n**Available Tools:**\n{tools}".lstrip()

def format_response_text(text: str) -> str:
    """
    Make a reply readable.

    - JSON capability listing -> bulleted markdown
    - other JSON object with a "message" -> that message
    - other JSON object/array -> pretty-printed JSON
    - JSON string -> its value
    Then literal "\\n" sequences become newlines, one pair of enclosing double
    quotes is dropped and escaped quotes are unescaped.
    """

    original = text

    try:
        try:
            parsed = json.loads(text)
        except (TypeError, ValueError):
            parsed = _NOT_JSON

        if isinstance(parsed, dict):
            if is_capability_listing(parsed):
                return format_capabilities(parsed)
            if parsed.get("message"):
                return str(parsed["message"])
            return json.dumps(parsed, indent=2, ensure_ascii=False)
        if isinstance(parsed, list):
            return json.dumps(parsed, indent=2, ensure_ascii=False)
        if isinstance(parsed, str):
            text = parsed

        text = text.replace("\\n", "\n")
        if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
            text = text[1:-1]
        text = text.replace('\\"', '"')

        return text
    except Exception:
        logger.warning("Could not format reply text; returning it unchanged.", exc_info=True)
        return original
