from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class NamedType:
    """A dependency key: an abstraction type optionally qualified by a name."""

    type: Any
    name: str | None = None

    def __repr__(self) -> str:
        type_name = getattr(self.type, "__qualname__", None) or repr(self.type)
        if self.name is None:
            return f"NamedType({type_name})"
        return f"NamedType({type_name}, {self.name!r})"
