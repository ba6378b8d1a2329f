"""Per-call resolution state.

A ``ResolutionContext`` is created for every resolve and every nested
sub-resolve. Contexts form a linked chain through ``parent`` that mirrors the
construction call stack; it is walked to detect circular dependencies. The
whole chain of one top-level call shares a single policy overlay (where
Per-Resolve values live), the overrides and the recovery list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn

from dicompose.diagnostics import MappedMarker, ResolvingMarker, annotate, get_trail
from dicompose.exceptions import DIComposeCircularDependencyError, DIComposeResolutionFailedError
from dicompose.injection import (
    DependencyOverride,
    FieldOverride,
    OptionalParameter,
    ParameterOverride,
    PropertyOverride,
    ResolvedParameter,
    ResolverOverride,
)
from dicompose.lifetime import NO_VALUE, LifetimeManager, PerResolveLifetimeManager
from dicompose.selection import DefaultedParameter

if TYPE_CHECKING:
    from dicompose.container import Container
    from dicompose.registration import Registration


class ResolutionContext:
    """State of one resolve call inside a resolve call tree."""

    __slots__ = (
        "container",
        "dependency_type",
        "existing",
        "name",
        "overrides",
        "parent",
        "policies",
        "recovery",
        "registration",
    )

    def __init__(
        self,
        container: Container,
        dependency_type: Any,
        name: str | None = None,
        *,
        parent: ResolutionContext | None = None,
        overrides: tuple[ResolverOverride, ...] = (),
        existing: Any = NO_VALUE,
    ) -> None:
        self.container = container
        self.dependency_type = dependency_type
        self.name = name
        self.parent = parent
        self.existing = existing
        self.registration: Registration | None = None
        if parent is None:
            self.overrides = overrides
            self.policies: dict[Any, Any] = {}
            self.recovery: list[LifetimeManager] = []
        else:
            self.overrides = parent.overrides
            self.policies = parent.policies
            self.recovery = parent.recovery

    @property
    def depth(self) -> int:
        depth = 0
        context = self.parent
        while context is not None:
            depth += 1
            context = context.parent
        return depth

    def resolve(self, dependency_type: Any, name: str | None = None) -> Any:
        """Resolve a dependency of the instance being built, as a child of this context."""
        if self.overrides:
            for override in self.overrides:
                if (
                    isinstance(override, DependencyOverride)
                    and override.dependency_type == dependency_type
                    and (override.name is None or override.name == name)
                ):
                    return self.resolve_value(override.value)
        return self.container._resolve(dependency_type, name, parent=self)  # noqa: SLF001

    def resolve_value(self, value: Any) -> Any:
        """Turn an injection value into the object to inject."""
        if isinstance(value, ResolvedParameter):
            return self.resolve(value.dependency_type, value.name)
        if isinstance(value, OptionalParameter):
            if not self.container.can_resolve(value.dependency_type, value.name):
                return None
            return self.resolve(value.dependency_type, value.name)
        if isinstance(value, DefaultedParameter):
            if not self.container.is_registered(value.dependency_type):
                return value.default
            return self.resolve(value.dependency_type)
        return value

    def resolve_parameter(self, owner: Any, parameter_name: str, value: Any) -> Any:
        if self.overrides:
            for override in self.overrides:
                if (
                    isinstance(override, ParameterOverride)
                    and override.parameter_name == parameter_name
                    and (override.target is None or override.target is owner)
                ):
                    return self.resolve_value(override.value)
        return self.resolve_value(value)

    def resolve_property(self, owner: Any, property_name: str, value: Any) -> Any:
        if self.overrides:
            for override in self.overrides:
                if (
                    isinstance(override, PropertyOverride)
                    and override.property_name == property_name
                    and (override.target is None or override.target is owner)
                ):
                    return self.resolve_value(override.value)
        return self.resolve_value(value)

    def resolve_field(self, owner: Any, field_name: str, value: Any) -> Any:
        if self.overrides:
            for override in self.overrides:
                if (
                    isinstance(override, FieldOverride)
                    and override.field_name == field_name
                    and (override.target is None or override.target is owner)
                ):
                    return self.resolve_value(override.value)
        return self.resolve_value(value)

    def check_recursion(self) -> Any:
        """Walk the ancestors looking for the key being resolved.

        Returns ``NO_VALUE`` when the key is not on the stack. When an ancestor
        resolves the same key and its Per-Resolve manager already holds a value,
        that value is returned. Any other recurrence is a genuine cycle.
        """
        context = self.parent
        while context is not None:
            if context.dependency_type == self.dependency_type and context.name == self.name:
                registration = context.registration
                manager = registration.lifetime_manager if registration is not None else None
                if isinstance(manager, PerResolveLifetimeManager):
                    value = manager.get_value(context)
                    if value is not NO_VALUE:
                        return value
                raise DIComposeCircularDependencyError(self.dependency_type, self.name)
            context = context.parent
        return NO_VALUE

    def add_recovery(self, manager: LifetimeManager) -> None:
        """Track a lifetime manager whose reservation must be undone if the call tree fails."""
        self.recovery.append(manager)

    def remove_recovery(self, manager: LifetimeManager) -> None:
        self.recovery.remove(manager)

    def fail(self, exc: Exception) -> NoReturn:
        """Record where ``exc`` happened and propagate it.

        Nested contexts re-raise the annotated exception unchanged; the
        outermost context undoes pending reservations and reports a single
        ``DIComposeResolutionFailedError``.
        """
        registration = self.registration
        if (
            registration is not None
            and registration.implementation is not None
            and registration.implementation != self.dependency_type
        ):
            annotate(exc, MappedMarker(registration.implementation))
        annotate(exc, ResolvingMarker(self.dependency_type, self.name))
        if self.parent is not None:
            raise exc

        pending = list(reversed(self.recovery))
        self.recovery.clear()
        for manager in pending:
            manager.recover()
        trail = get_trail(exc)
        message = self.container.formatter.format(exc, trail)
        raise DIComposeResolutionFailedError(self.dependency_type, self.name, message, trail) from exc

    def __repr__(self) -> str:
        return f"ResolutionContext({self.dependency_type!r}, {self.name!r}, depth={self.depth})"
