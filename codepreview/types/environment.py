"""Variable environment for one pseudo-execution run.

A flat mapping from identifier to Value. It is created empty when a run starts,
mutated only by assignment statements and dropped when the run settles; nothing
survives between runs.
"""

from __future__ import annotations

from io import StringIO
from typing import Iterator, Union

from codepreview.errors import PreviewUnboundName
from codepreview.types.value import Value


class _NotFoundType:
    __slots__ = ()

    def __repr__(self): return "NotFound"
    def __bool__(self): return False


NotFound = _NotFoundType()


class Environment:
    """Mapping from variable names to execution values."""

    __slots__ = ("vars",)

    def __init__(self):
        self.vars: dict[str, Value] = {}

    def assign(self, name: str, value: Value) -> None:
        """Bind `name` to `value`, replacing any previous binding."""
        if not isinstance(value, Value):
            raise TypeError(f"Cannot assign {value!r} to {name}: not a Value")
        self.vars[name] = value

    def get(self, name: str) -> Union[Value, _NotFoundType]:
        """Return the bound value, or the NotFound sentinel."""
        return self.vars.get(name, NotFound)

    def lookup(self, name: str) -> Value:
        """Return the bound value. Raises PreviewUnboundName if unbound."""
        try:
            return self.vars[name]
        except KeyError:
            raise PreviewUnboundName(f"Name '{name}' is not defined") from None

    def copy(self) -> Environment:
        env = Environment()
        env.vars.update(self.vars)
        return env

    def clear(self) -> None:
        self.vars.clear()

    def __contains__(self, name: str) -> bool:
        return name in self.vars

    def __iter__(self) -> Iterator[str]:
        return iter(self.vars)

    def __len__(self) -> int:
        return len(self.vars)

    def __repr__(self) -> str:
        with StringIO() as buffer:
            buffer.write("<Environment {")
            buffer.write(", ".join(f"{k}: {v.render()!r}" for k, v in self.vars.items()))
            buffer.write("}>")
            return buffer.getvalue()
