"""Prop schema validation.

Checks a map of prop values against a capsule's PropSchema, collecting every
violation instead of stopping at the first, and fills defaults for props
that were left out.
"""

import copy
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..errors import (
    InvalidOption,
    MissingRequiredProp,
    PropViolation,
    TypeMismatch,
    UnknownProp,
)
from .schema import PropSchema, PropSpec, PropType

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


@dataclass
class ValidationResult:
    """Outcome of validating prop values against a schema."""

    values: dict[str, Any] = field(default_factory=dict)
    violations: list[PropViolation] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "values": self.values,
            "violations": [v.to_dict() for v in self.violations],
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_color(value: Any) -> bool:
    # Hex literals must be well formed; anything else is a theme token
    if not isinstance(value, str) or not value:
        return False
    if value.startswith("#"):
        return bool(HEX_COLOR.match(value))
    return True


def _is_handler(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_literal(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _is_slot(value: Any) -> bool:
    return isinstance(value, (str, dict, list))


TYPE_CHECKERS: dict[PropType, tuple[str, Callable[[Any], bool]]] = {
    PropType.STRING: ("string", lambda v: isinstance(v, str)),
    PropType.NUMBER: ("number", _is_number),
    PropType.BOOLEAN: ("boolean", lambda v: isinstance(v, bool)),
    PropType.DATE: ("date", _is_date),
    PropType.ARRAY: ("array", lambda v: isinstance(v, (list, tuple))),
    PropType.OBJECT: ("object", lambda v: isinstance(v, dict)),
    PropType.FUNCTION: ("function reference", _is_handler),
    PropType.ICON: ("icon name", lambda v: isinstance(v, str) and bool(v)),
    PropType.COLOR: ("color", _is_color),
    PropType.SELECT: ("option literal", _is_literal),
    PropType.ACTION: ("action reference", _is_handler),
    PropType.SLOT: ("slot content", _is_slot),
}

_unchecked = set(PropType) - set(TYPE_CHECKERS)
if _unchecked:
    raise RuntimeError(f"no value checker for prop types: {sorted(t.value for t in _unchecked)}")


def check_value(spec: PropSpec, value: Any) -> Optional[PropViolation]:
    """Check one present value against its spec. Returns the violation, if any."""
    expected, checker = TYPE_CHECKERS[spec.type]
    if not checker(value):
        return TypeMismatch.for_value(spec.name, expected, value)

    if spec.options and spec.type in (PropType.SELECT, PropType.STRING):
        if value not in spec.options:
            return InvalidOption.for_value(spec.name, value, spec.options)

    if spec.type == PropType.NUMBER:
        if spec.min is not None and value < spec.min:
            return TypeMismatch.for_value(spec.name, expected, value, f"below minimum {spec.min:g}")
        if spec.max is not None and value > spec.max:
            return TypeMismatch.for_value(spec.name, expected, value, f"above maximum {spec.max:g}")

    if spec.pattern and spec.type == PropType.STRING:
        try:
            matched = re.fullmatch(spec.pattern, value) is not None
        except re.error:
            return TypeMismatch.for_value(spec.name, expected, value, "schema pattern is not a valid regex")
        if not matched:
            return TypeMismatch.for_value(spec.name, expected, value, f"does not match {spec.pattern}")

    return None


def validate(
    schema: PropSchema,
    values: Optional[dict[str, Any]],
    strict: bool = True,
) -> ValidationResult:
    """Validate prop values against a schema.

    Args:
        schema: The capsule's prop schema
        values: Prop name to concrete value. None counts as an empty map.
        strict: Report props missing from the schema as UnknownProp. When
            False they are dropped silently, which lets project data saved
            against an older schema version load.

    Returns:
        ValidationResult with the normalized value map (defaults filled, in
        schema order) and every violation found, in schema order followed by
        unknown props.
    """
    values = values or {}
    result = ValidationResult()

    for spec in schema:
        value = values.get(spec.name)
        if value is None:
            if spec.has_default:
                result.values[spec.name] = copy.deepcopy(spec.default)
            elif spec.required:
                result.violations.append(MissingRequiredProp.for_prop(spec.name))
            continue

        problem = check_value(spec, value)
        if problem is not None:
            result.violations.append(problem)
        else:
            result.values[spec.name] = value

    if strict:
        for key in values:
            if key not in schema:
                result.violations.append(UnknownProp.for_prop(str(key)))

    return result
