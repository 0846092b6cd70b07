"""
src/tools/registry.py

Tool registry: name -> (schema, handler). Schemas are advertised to the model;
handlers run when the model asks for them.

Handlers are plain callables taking the tool's arguments as keyword arguments.
They may be sync or async and return any JSON-serialisable value.
"""


import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from rapidfuzz import fuzz, process

from orchestrator.errors import DuplicateToolName, HandlerFailure, UnknownTool
from orchestrator.models import ToolSchema


logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Any]

_JSON_TYPES: Dict[str, tuple] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


@dataclass(frozen=True)
class RegisteredTool:

    schema: ToolSchema
    handler: ToolHandler
    return_direct: bool = False     # result is the final reply, no follow-up model call
    resets_history: bool = False    # handler clears the conversation

    @property
    def name(self) -> str:

        return self.schema.name


# -------- Argument validation --------------------------------------------------
def _type_ok(expected: str, value: Any) -> bool:

    allowed = _JSON_TYPES.get(expected)

    if allowed is None:
        return True
    # bool is an int subclass; JSON keeps them apart
    if isinstance(value, bool) and expected != "boolean":
        return False

    return isinstance(value, allowed)

def validate_arguments(schema: ToolSchema, arguments: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Check model-supplied arguments against the schema and fill in defaults.

    Raises:
        HandlerFailure on unknown keys, missing required keys, wrong JSON
        types or values outside an enum.
    """

    unknown = sorted(set(arguments) - set(schema.parameters))
    if unknown:
        raise HandlerFailure(schema.name, f"Unexpected arguments: {unknown}")

    out: Dict[str, Any] = {}

    for pname, param in schema.parameters.items():
        value = arguments.get(pname)

        if value is None or (isinstance(value, str) and not value.strip()):
            if pname in schema.required:
                raise HandlerFailure(schema.name, f"Missing required argument '{pname}'")
            if param.default is not None:
                out[pname] = param.default
            continue

        if not _type_ok(param.type, value):
            raise HandlerFailure(schema.name, f"Argument '{pname}' must be of type {param.type}")
        if param.enum is not None and value not in param.enum:
            raise HandlerFailure(schema.name, f"Argument '{pname}' must be one of {param.enum}, got {value!r}")

        out[pname] = value

    return out


# -------- Registry -------------------------------------------------------------
class ToolRegistry:

    def __init__(self) -> None:

        self._tools: Dict[str, RegisteredTool] = {}

    def register(
            self,
            schema: ToolSchema,
            handler: ToolHandler,
            *,
            return_direct: bool = False,
            resets_history: bool = False,
    ) -> RegisteredTool:
        """
        Add a tool. Names are unique for the registry's lifetime.

        A tool that resets the history must also return directly: after the
        wipe there is no conversation left to send for a follow-up reply.
        """

        if schema.name in self._tools:
            raise DuplicateToolName(schema.name)
        if resets_history and not return_direct:
            raise ValueError(f"Tool '{schema.name}' resets history and must be registered with return_direct=True")

        entry = RegisteredTool(schema, handler, return_direct=return_direct, resets_history=resets_history)
        self._tools[schema.name] = entry
        logger.debug("Registered tool %s", schema.name)

        return entry

    def lookup(self, name: str) -> RegisteredTool:

        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name, suggestion=self._closest(name)) from None

    def _closest(self, name: str) -> Optional[str]:
        """Best fuzzy match among registered names, for error messages only."""

        if not self._tools or not name:
            return None

        match = process.extractOne(name, list(self._tools), scorer=fuzz.WRatio, score_cutoff=80)

        return match[0] if match else None

    def all_schemas(self) -> List[ToolSchema]:

        return [t.schema for t in self._tools.values()]

    def names(self) -> List[str]:

        return list(self._tools)

    def describe(self) -> str:
        """One "name: description" line per tool."""

        return "\n".join(f"{t.name}: {t.schema.description}" for t in self._tools.values())

    async def execute(self, name: str, arguments: Mapping[str, Any]) -> Any:
        """
        Look up, validate and run a tool.

        Raises:
            UnknownTool if the name is not registered.
            HandlerFailure if arguments don't validate or the handler raises.
        """

        tool = self.lookup(name)
        kwargs = validate_arguments(tool.schema, arguments or {})

        try:
            out = tool.handler(**kwargs)
            if inspect.isawaitable(out):
                out = await out
        except HandlerFailure:
            raise
        except Exception as e:
            raise HandlerFailure(name, str(e) or type(e).__name__) from e

        return out

    def __contains__(self, name: object) -> bool:

        return name in self._tools

    def __len__(self) -> int:

        return len(self._tools)

    def __iter__(self) -> Iterator[RegisteredTool]:

        return iter(list(self._tools.values()))
