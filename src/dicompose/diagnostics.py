"""Failure trail markers and their human-readable rendering.

While an exception travels up through nested resolution contexts every step
that it passes attaches a marker describing what was being processed. The
outermost resolve call hands the collected trail to a ``DiagnosticsFormatter``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

_TRAIL_ATTRIBUTE = "__dicompose_trail__"
_SEPARATOR = "_____________________________________________________"


def _type_name(value: Any) -> str:
    return getattr(value, "__qualname__", None) or repr(value)


@dataclass(frozen=True, slots=True)
class ResolvingMarker:
    """A dependency was being resolved."""

    dependency_type: Any
    name: str | None = None


@dataclass(frozen=True, slots=True)
class MappedMarker:
    """The requested abstraction was mapped to an implementation type."""

    implementation: Any


@dataclass(frozen=True, slots=True)
class ParameterMarker:
    """A constructor or method parameter was being resolved."""

    owner: Any
    parameter_name: str


@dataclass(frozen=True, slots=True)
class ConstructorMarker:
    """A constructor was being invoked or its arguments resolved."""

    owner: Any
    signature: str


@dataclass(frozen=True, slots=True)
class MethodMarker:
    """An injection method was being invoked or its arguments resolved."""

    owner: Any
    method_name: str
    signature: str


@dataclass(frozen=True, slots=True)
class PropertyMarker:
    """A property was being injected."""

    owner: Any
    property_name: str


@dataclass(frozen=True, slots=True)
class FieldMarker:
    """A field was being injected."""

    owner: Any
    field_name: str


def annotate(exc: BaseException, marker: Any) -> None:
    """Append a trail marker to an exception travelling up the resolve stack."""
    trail = exc.__dict__.get(_TRAIL_ATTRIBUTE)
    if trail is None:
        trail = []
        setattr(exc, _TRAIL_ATTRIBUTE, trail)
    trail.append(marker)


def get_trail(exc: BaseException) -> tuple[Any, ...]:
    """Return the markers attached to an exception, innermost first."""
    return tuple(exc.__dict__.get(_TRAIL_ATTRIBUTE, ()))


class DiagnosticsFormatter(Protocol):
    """Render a failure trail into the message of a resolution failure."""

    def format(self, error: BaseException, trail: Sequence[Any]) -> str:
        """Return the message for ``error`` raised at the location given by ``trail``."""


class TrailFormatter:
    """Default formatter listing the trail outermost first, one marker per line."""

    def format(self, error: BaseException, trail: Sequence[Any]) -> str:
        lines = [f"{type(error).__name__}: {error}", _SEPARATOR, "Exception occurred while:"]
        lines.extend(self.describe(marker) for marker in reversed(trail))
        return "\n".join(lines)

    def describe(self, marker: Any) -> str:
        """Render a single trail marker."""
        if isinstance(marker, ResolvingMarker):
            if marker.name is None:
                return f"\n• while resolving:  {_type_name(marker.dependency_type)}"
            return (
                f"\n• while resolving:  {_type_name(marker.dependency_type)} "
                f"registered with name: {marker.name}"
            )
        if isinstance(marker, MappedMarker):
            return f"        mapped to:  {_type_name(marker.implementation)}"
        if isinstance(marker, ParameterMarker):
            return f"    for parameter:  {marker.parameter_name}"
        if isinstance(marker, ConstructorMarker):
            return f"   on constructor:  {marker.signature}"
        if isinstance(marker, MethodMarker):
            return f"        on method:  {marker.signature}"
        if isinstance(marker, PropertyMarker):
            return f"    for property:   {marker.property_name}"
        if isinstance(marker, FieldMarker):
            return f"       for field:   {marker.field_name}"
        return str(marker)
