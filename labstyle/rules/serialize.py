"""
Rule Serialization

Rules travel as plain dictionaries: in YAML configuration, in
`--list-rules --format json`, and in JSON reports. Enum fields accept
either their value or their name, case-insensitively, so hand-written
configuration can say `category: naming` or `category: 3`.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence, Type, TypeVar

from .model import RuleCategory, RuleDefinition, RuleKind, Severity

E = TypeVar("E", bound=Enum)

_FIELDS = (
    "rule_id", "kind", "name", "category", "description",
    "severity", "options", "enabled", "recommendations",
)


class RuleEncoder(json.JSONEncoder):
    """JSON encoder for rule types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, RuleCategory):
            return obj.name.lower()
        if isinstance(obj, Enum):
            return obj.value
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        if isinstance(obj, tuple):
            return list(obj)
        return super().default(obj)


def parse_enum(enum_type: Type[E], value: Any) -> E:
    """
    Look up an enum member by value or by name.

    Raises:
        ValueError: If nothing matches.
    """
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        pass
    if isinstance(value, str):
        key = value.strip().upper()
        if key in enum_type.__members__:
            return enum_type.__members__[key]
        for member in enum_type:
            if isinstance(member.value, str) and member.value.upper() == key:
                return member
    raise ValueError(f"Invalid {enum_type.__name__}: {value!r}")


def rule_to_dict(rule: RuleDefinition) -> Dict[str, Any]:
    return json.loads(json.dumps(rule, cls=RuleEncoder))


def rule_from_dict(data: Dict[str, Any]) -> RuleDefinition:
    """
    Reconstruct a rule from a dictionary.

    Raises:
        ValueError: If required fields are missing or malformed.
    """
    unknown = sorted(set(data) - set(_FIELDS))
    if unknown:
        raise ValueError(f"Unknown rule field(s): {', '.join(unknown)}")
    try:
        options = data.get("options") or {}
        if not isinstance(options, dict):
            raise TypeError("options must be a mapping")
        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise TypeError("enabled must be true or false")
        recommendations = data.get("recommendations", ())
        if not isinstance(recommendations, (list, tuple)):
            raise TypeError("recommendations must be a list")
        return RuleDefinition(
            rule_id=str(data["rule_id"]),
            kind=parse_enum(RuleKind, data["kind"]),
            name=str(data["name"]),
            category=parse_enum(RuleCategory, data["category"]),
            description=data.get("description", ""),
            severity=parse_enum(Severity, data.get("severity", "error")),
            options=dict(options),
            enabled=enabled,
            recommendations=tuple(recommendations),
        )
    except KeyError as e:
        raise ValueError(f"Missing required field: {e}")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid data format: {e}")


def rules_to_json(rules: Sequence[RuleDefinition], indent: int = 2) -> str:
    return json.dumps(list(rules), cls=RuleEncoder, indent=indent)


def rules_from_json(json_str: str) -> List[RuleDefinition]:
    data = json.loads(json_str)
    if not isinstance(data, list):
        raise ValueError("Expected a JSON list of rules")
    return [rule_from_dict(item) for item in data]
