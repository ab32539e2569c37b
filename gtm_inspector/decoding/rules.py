"""Normalization of GTM predicates and rules.

Two shapes are found in the wild. Published containers encode a rule as a list
of tagged index lists::

    [["if", 0, 1], ["add", 3], ["unless", 2], ["block", 4]]

where ``if``/``unless`` reference predicates and ``add``/``block`` reference
tags. Older exports use an object whose ``add`` and ``unless`` lists reference
predicates directly. Predicates come either as
``{"function": "_eq", "arg0": ["macro", 0], "arg1": "gtm.js"}`` or as a
positional ``[operator, subject, operand]`` list.

All indices are untrusted: anything out of range or of the wrong type resolves
to nothing instead of raising.
"""

import json
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from .classification import operator_label


EVENT_MACRO_INDEX = 0


@dataclass(frozen=True)
class Condition:
    """One decoded predicate."""
    operator: str
    subject: Any
    operand: str
    negated: bool = False

    @property
    def subject_macro(self) -> Optional[int]:
        return macro_reference(self.subject)

    @property
    def tests_event(self) -> bool:
        return self.subject_macro == EVENT_MACRO_INDEX

    def describe(self) -> str:
        """Readable rendering, e.g. ``event == "gtm.js"``."""
        parts = []
        macro = self.subject_macro
        if macro == EVENT_MACRO_INDEX:
            parts.append("event")
        elif macro is not None:
            parts.append(f"{{{{macro {macro}}}}}")
        if self.negated:
            parts.append("NOT")
        parts.append(operator_label(self.operator))
        parts.append(f'"{self.operand}"')
        return " ".join(parts)


@dataclass
class RuleShape:
    """Index lists of one rule after normalization."""
    conditions: List[int] = field(default_factory=list)
    exceptions: List[int] = field(default_factory=list)
    fires: List[int] = field(default_factory=list)
    blocks: List[int] = field(default_factory=list)


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _index_list(values: Any) -> List[int]:
    if not isinstance(values, list):
        values = [values] if values is not None else []
    return [i for i in (_as_index(v) for v in values) if i is not None]


def macro_reference(value: Any) -> Optional[int]:
    """Macro index of a ``["macro", n]`` or ``{"macro": n}`` reference."""
    if isinstance(value, list) and len(value) >= 2 and value[0] == "macro":
        return _as_index(value[1])
    if isinstance(value, dict) and "macro" in value:
        return _as_index(value["macro"])
    return None


def _operand_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    macro = macro_reference(value)
    if macro is not None:
        return f"{{{{macro {macro}}}}}"
    if isinstance(value, (int, float, bool)):
        return json.dumps(value)
    return json.dumps(value, ensure_ascii=False)


def normalize_predicate(predicate: Any) -> Optional[Condition]:
    """Decode one raw predicate, or None if its shape is unrecognized."""
    if isinstance(predicate, dict):
        operator = predicate.get("function")
        if not isinstance(operator, str):
            return None
        return Condition(
            operator=operator,
            subject=predicate.get("arg0"),
            operand=_operand_text(predicate.get("arg1")),
            negated=bool(predicate.get("negate"))
        )

    if isinstance(predicate, list) and predicate and isinstance(predicate[0], str):
        return Condition(
            operator=predicate[0],
            subject=predicate[1] if len(predicate) > 1 else None,
            operand=_operand_text(predicate[2] if len(predicate) > 2 else None)
        )

    return None


def normalize_rule(rule: Any) -> RuleShape:
    """Decode one raw rule into predicate and tag index lists."""
    shape = RuleShape()

    if isinstance(rule, dict):
        if "if" in rule:
            shape.conditions = _index_list(rule.get("if"))
            shape.fires = _index_list(rule.get("add"))
        else:
            shape.conditions = _index_list(rule.get("add"))
            shape.fires = _index_list(rule.get("tags"))
        shape.exceptions = _index_list(rule.get("unless"))
        shape.blocks = _index_list(rule.get("block"))
        return shape

    if isinstance(rule, list):
        targets = {
            "if": shape.conditions,
            "unless": shape.exceptions,
            "add": shape.fires,
            "block": shape.blocks,
        }
        for clause in rule:
            if isinstance(clause, list) and clause and isinstance(clause[0], str) and clause[0] in targets:
                targets[clause[0]].extend(_index_list(clause[1:]))

    return shape


def resolve_conditions(indices: Sequence[int], predicates: Sequence[Any]) -> List[Condition]:
    """Resolve predicate indices, skipping unresolvable ones."""
    conditions = []
    for index in indices:
        if 0 <= index < len(predicates):
            condition = normalize_predicate(predicates[index])
            if condition is not None:
                conditions.append(condition)
    return conditions
