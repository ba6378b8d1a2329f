"""Explicit injection directives and per-call resolver overrides."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ResolvedParameter:
    """Resolve the value from the container.

    ``dependency_type`` defaults to the annotated type of the member it is used for.
    """

    dependency_type: Any = None
    name: str | None = None


@dataclass(frozen=True, slots=True)
class OptionalParameter:
    """Resolve the value from the container, or use ``None`` when it cannot be resolved."""

    dependency_type: Any = None
    name: str | None = None


RESOLVE = ResolvedParameter()
"""Default value of directives: resolve the member's annotated type."""


class InjectionMember:
    """Base class of explicit injection directives attached to a registration."""

    __slots__ = ()


class InjectionConstructor(InjectionMember):
    """Call the constructor with the given values, one per parameter in order.

    Values may be constants, ``ResolvedParameter``/``OptionalParameter`` markers
    or classes, which are resolved.
    """

    __slots__ = ("values",)

    def __init__(self, *values: Any) -> None:
        self.values = values

    def __repr__(self) -> str:
        return f"InjectionConstructor({', '.join(map(repr, self.values))})"


class InjectionProperty(InjectionMember):
    """Set a property after construction."""

    __slots__ = ("name", "value")

    def __init__(self, name: str, value: Any = RESOLVE) -> None:
        self.name = name
        self.value = value

    def __repr__(self) -> str:
        return f"InjectionProperty({self.name!r}, {self.value!r})"


class InjectionField(InjectionMember):
    """Assign an instance attribute after construction."""

    __slots__ = ("name", "value")

    def __init__(self, name: str, value: Any = RESOLVE) -> None:
        self.name = name
        self.value = value

    def __repr__(self) -> str:
        return f"InjectionField({self.name!r}, {self.value!r})"


class InjectionMethod(InjectionMember):
    """Call a method after construction with the given values, one per parameter."""

    __slots__ = ("name", "values")

    def __init__(self, name: str, *values: Any) -> None:
        self.name = name
        self.values = values

    def __repr__(self) -> str:
        args = ", ".join([repr(self.name), *map(repr, self.values)])
        return f"InjectionMethod({args})"


class ResolverOverride:
    """Base class of values that replace normal resolution for one resolve call."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class ParameterOverride(ResolverOverride):
    """Override a constructor or method parameter by name.

    ``target`` limits the override to parameters of one implementation type.
    """

    parameter_name: str
    value: Any
    target: Any = None


@dataclass(frozen=True, slots=True)
class PropertyOverride(ResolverOverride):
    """Override an injected property by name."""

    property_name: str
    value: Any
    target: Any = None


@dataclass(frozen=True, slots=True)
class FieldOverride(ResolverOverride):
    """Override an injected field by name."""

    field_name: str
    value: Any
    target: Any = None


@dataclass(frozen=True, slots=True)
class DependencyOverride(ResolverOverride):
    """Return ``value`` whenever ``dependency_type`` is resolved.

    Without a ``name`` the override matches every registration name of the type.
    """

    dependency_type: Any
    value: Any
    name: str | None = None
