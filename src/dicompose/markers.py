from collections.abc import Callable
from typing import Any, NamedTuple, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

INJECTION_CONSTRUCTOR_ATTRIBUTE = "__dicompose_injection_constructor__"
INJECTION_METHOD_ATTRIBUTE = "__dicompose_injection_method__"


class Dependency(NamedTuple):
    """Mark a parameter, field or property for injection.

    Attach ``Dependency`` metadata to ``typing.Annotated``. The optional ``name``
    selects a named registration.

    Examples:
        .. code-block:: python

            class Service:
                logger: Annotated[Logger, Dependency()]

                def __init__(self, db: Annotated[Database, Dependency("replica")]) -> None: ...

    """

    name: str | None = None


class OptionalDependency(NamedTuple):
    """Mark a dependency that resolves to ``None`` when it cannot be resolved."""

    name: str | None = None


def injection_constructor(func: F) -> F:
    """Select a classmethod or staticmethod as the constructor used for injection.

    Apply it below ``@classmethod``/``@staticmethod``. A class may mark at most one
    constructor; marking several makes the registration ambiguous.
    """
    setattr(func, INJECTION_CONSTRUCTOR_ATTRIBUTE, True)
    return func


def injection_method(func: F) -> F:
    """Mark an instance method to be called with resolved arguments after construction."""
    setattr(func, INJECTION_METHOD_ATTRIBUTE, True)
    return func
