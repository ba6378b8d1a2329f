from __future__ import annotations

import datetime
import decimal
import enum
import inspect
import pathlib
import types
import uuid
from dataclasses import dataclass
from typing import Any, TypeGuard, get_origin


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a plain class rather than a parameterized alias."""
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


@dataclass(frozen=True, slots=True)
class ConcreteTypeAutoregistrationPolicy:
    """Decide which unregistered types may be registered implicitly on first resolve."""

    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
        enum.Enum,
        BaseException,
    )

    def is_eligible_concrete(self, candidate: object) -> bool:
        """Return true for concrete user classes, including parameterized generic classes.

        Builtins, primitives, abstract classes, protocols, metaclasses and the
        ignored value types must always be registered explicitly.
        """
        origin = get_origin(candidate)
        if origin is not None:
            return isinstance(origin, type) and self.is_eligible_concrete(origin)
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ == "builtins":
            return False
        if inspect.isabstract(candidate) or getattr(candidate, "_is_protocol", False):
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)
