"""Name resolution cascades for tags, triggers and variables.

Published containers rarely carry human names. Each record kind has an ordered
list of resolvers; every resolver returns a name or None, and the first
non-empty result wins.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .classification import CONSTANT_FUNCTION, URL_FUNCTION, function_of


@dataclass
class NameContext:
    """Lookup state shared by the resolvers of one decode pass."""
    position: int
    entities: Dict[str, Any] = field(default_factory=dict)
    predicates: Sequence[Any] = ()
    positive_operands: List[str] = field(default_factory=list)


NameResolver = Callable[[Any, NameContext], Optional[str]]

TAG_PARAMETER_FALLBACKS = (
    "vtp_name",
    "vtp_trackingId",
    "vtp_measurementId",
    "vtp_conversionId",
    "vtp_eventName",
)

SYNTHESIZED_NAME_LENGTH = 30


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def explicit_name(record: Any, ctx: NameContext) -> Optional[str]:
    if isinstance(record, dict):
        return _text(record.get("name"))
    return None


def metadata_name(record: Any, ctx: NameContext) -> Optional[str]:
    """Name from a ``["map", "name", value, ...]`` metadata list."""
    if not isinstance(record, dict):
        return None

    metadata = record.get("metadata")
    if not isinstance(metadata, list):
        return None

    for i, item in enumerate(metadata[:-1]):
        if item == "name":
            return _text(metadata[i + 1])
    return None


def entity_name_by_position(record: Any, ctx: NameContext) -> Optional[str]:
    """First element of the entity entry at the record's own position."""
    entry = ctx.entities.get(str(ctx.position))
    if isinstance(entry, list) and entry:
        return _text(entry[0])
    return None


def entity_trigger_name(record: Any, ctx: NameContext) -> Optional[str]:
    """First entity entry whose label mentions a trigger."""
    for key in sorted((k for k in ctx.entities if k.isdigit()), key=int):
        entry = ctx.entities[key]
        if isinstance(entry, list) and entry and "trigger" in str(entry[0]).lower():
            return _text(entry[0])
    return None


def tag_parameter_name(record: Any, ctx: NameContext) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    for key in TAG_PARAMETER_FALLBACKS:
        name = _text(record.get(key))
        if name:
            return name
    return None


def synthesized_trigger_name(record: Any, ctx: NameContext) -> Optional[str]:
    """Name built from the first one or two positive condition operands."""
    operands = [op[:SYNTHESIZED_NAME_LENGTH] for op in ctx.positive_operands[:2] if op]
    if not operands:
        return None
    return "Trigger: " + " / ".join(operands)


def variable_parameter_name(record: Any, ctx: NameContext) -> Optional[str]:
    """Type-specific vtp parameter naming a variable."""
    if not isinstance(record, dict):
        return None

    function = function_of(record)
    name = _text(record.get("vtp_name"))
    if name:
        return name
    if function == CONSTANT_FUNCTION:
        return _text(record.get("vtp_value"))
    if function == URL_FUNCTION:
        return _text(record.get("vtp_component"))
    return None


TAG_NAME_RESOLVERS: List[NameResolver] = [
    explicit_name,
    metadata_name,
    entity_name_by_position,
    tag_parameter_name,
]

TRIGGER_NAME_RESOLVERS: List[NameResolver] = [
    explicit_name,
    metadata_name,
    synthesized_trigger_name,
    entity_trigger_name,
]

VARIABLE_NAME_RESOLVERS: List[NameResolver] = [
    explicit_name,
    metadata_name,
    variable_parameter_name,
]


def resolve_name(record: Any, ctx: NameContext,
                 resolvers: Sequence[NameResolver], default: str = "") -> str:
    """Run resolvers in order and return the first name found."""
    for resolver in resolvers:
        name = resolver(record, ctx)
        if name:
            return name
    return default
