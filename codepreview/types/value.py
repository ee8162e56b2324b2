"""Execution values: a tagged variant over string, integer and float.

Every value produced by literal parsing or input coercion carries an explicit
ValueKind; arithmetic and formatting dispatch on the tag, never on isinstance
checks against whatever Python object happens to be stored.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ValueKind(Enum):
    STRING = "str"
    INTEGER = "int"
    FLOAT = "float"


@dataclass(frozen=True)
class Value:
    kind: ValueKind
    data: Union[str, int, float]

    @classmethod
    def string(cls, text: str) -> Value:
        return cls(ValueKind.STRING, str(text))

    @classmethod
    def integer(cls, number: int) -> Value:
        return cls(ValueKind.INTEGER, int(number))

    @classmethod
    def floating(cls, number: float) -> Value:
        return cls(ValueKind.FLOAT, float(number))

    @classmethod
    def of(cls, obj: Union[str, int, float]) -> Value:
        """Wrap a Python primitive; bool is rejected along with anything else."""
        if isinstance(obj, bool):
            raise TypeError("bool is not an execution value")
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.floating(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        raise TypeError(f"Cannot wrap {type(obj).__name__} as an execution value")

    @property
    def is_numeric(self) -> bool:
        return self.kind is not ValueKind.STRING

    def render(self) -> str:
        """Default stringification; floats keep their shortest round-trip repr."""
        if self.kind is ValueKind.STRING:
            return self.data
        if self.kind is ValueKind.INTEGER:
            return str(self.data)
        if self.kind is ValueKind.FLOAT:
            return repr(self.data)
        raise AssertionError(f"Unhandled value kind {self.kind}")

    def __str__(self) -> str:
        return self.render()


_ZERO = {
    ValueKind.INTEGER: Value.integer(0),
    ValueKind.FLOAT: Value.floating(0.0),
}


def coerce(raw: str, kind: ValueKind) -> tuple[Value, Optional[str]]:
    """Convert raw input text to `kind`.

    Returns (value, warning). Text that is not a valid number for an INTEGER or
    FLOAT target produces a zero of that kind and a warning message; this
    function never raises.
    """
    if kind is ValueKind.STRING:
        return Value.string(raw), None
    text = raw.strip()
    try:
        if kind is ValueKind.INTEGER:
            return Value.integer(int(text)), None
        if kind is ValueKind.FLOAT:
            return Value.floating(float(text)), None
    except ValueError:
        fallback = _ZERO[kind]
        return fallback, (
            f"Warning: invalid literal for {kind.value}(): {raw!r}; using {fallback.render()}"
        )
    raise AssertionError(f"Unhandled value kind {kind}")
