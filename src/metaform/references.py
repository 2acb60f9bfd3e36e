"""
Operand resolution for rules and validators.

An operand string is one of:
    - a literal:             "42", "2021-01-01", "Yes"
    - a field reference:     "[dateOfBirth]"  -> current answer for dateOfBirth
    - a variable reference:  "%TODAY"        -> looked up in a VariableSource

Resolution happens every time an operand is evaluated; nothing is cached,
so a reference always reflects the latest answer.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Protocol

from metaform.data import FormData

logger = logging.getLogger(__name__)

FIELD_REFERENCE_OPEN = "["
FIELD_REFERENCE_CLOSE = "]"
VARIABLE_REFERENCE_PREFIX = "%"


def field_reference(value: Optional[str]) -> Optional[str]:
    """Return the referenced field name if value is "[name]", else None."""
    if not value or len(value) < 3:
        return None
    if value.startswith(FIELD_REFERENCE_OPEN) and value.endswith(FIELD_REFERENCE_CLOSE):
        return value[1:-1]
    return None


def variable_reference(value: Optional[str]) -> Optional[str]:
    """Return the variable name if value is "%NAME", else None."""
    if not value or len(value) < 2:
        return None
    if value.startswith(VARIABLE_REFERENCE_PREFIX):
        return value[1:]
    return None


def is_field_reference(value: Optional[str]) -> bool:
    return field_reference(value) is not None


def is_variable_reference(value: Optional[str]) -> bool:
    return variable_reference(value) is not None


def referenced_fields(*operands: Optional[str]) -> List[str]:
    """Field names referenced by any of the operands, in order, no repeats."""
    found: List[str] = []
    for operand in operands:
        name = field_reference(operand)
        if name is not None and name not in found:
            found.append(name)
    return found


class VariableSource(Protocol):
    """Anything that can turn a variable name into a string value."""

    def resolve(self, name: str) -> str:
        ...


class NullVariableSource:
    """Every variable resolves to ''."""

    def resolve(self, name: str) -> str:
        return ""


class MappingVariableSource:
    """Variables from a fixed mapping; unknown names resolve to ''."""

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self.values: Dict[str, str] = dict(values or {})

    def resolve(self, name: str) -> str:
        return self.values.get(name, "")


class BuiltinVariableSource(MappingVariableSource):
    """
    Mapping variables plus the built-ins:
        TODAY  current date, yyyy-mm-dd
        NOW    current date and time, yyyy-mm-dd HH:MM

    Values in the mapping win over built-ins of the same name.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None,
                 clock: Callable[[], datetime] = datetime.now):
        super().__init__(values)
        self.clock = clock

    def resolve(self, name: str) -> str:
        if name in self.values:
            return self.values[name]
        if name == "TODAY":
            return self.clock().strftime("%Y-%m-%d")
        if name == "NOW":
            return self.clock().strftime("%Y-%m-%d %H:%M")
        logger.debug("Variable %s has no value", name)
        return ""


def resolve(operand: Optional[str], data: FormData,
            variables: Optional[VariableSource] = None) -> str:
    """
    Resolve an operand against the current answers.

    Field references read data, variable references go to variables (or
    resolve to '' when there is no source), anything else is returned as is.
    """
    if operand is None:
        return ""

    field_name = field_reference(operand)
    if field_name is not None:
        return data.get_value(field_name)

    variable_name = variable_reference(operand)
    if variable_name is not None:
        if variables is None:
            return ""
        return variables.resolve(variable_name)

    return operand
