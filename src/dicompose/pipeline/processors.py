"""Build steps of a pipeline.

Each processor contributes one step and knows two ways to express it:
``get_resolver`` wraps the next step in a closure (interpreted strategy) and
``emit`` renders a source fragment of the fused ``build`` function (compiled
strategy). Both must behave identically.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from dicompose.diagnostics import (
    ConstructorMarker,
    FieldMarker,
    MethodMarker,
    ParameterMarker,
    PropertyMarker,
    annotate,
)
from dicompose.exceptions import DIComposeInvalidRegistrationError
from dicompose.lifetime import NO_VALUE, PerResolveLifetimeManager, TransientLifetimeManager
from dicompose.pipeline.templates import (
    CACHED_LIFETIME_TEMPLATE,
    CONSTRUCTOR_TEMPLATE,
    FACTORY_TEMPLATE,
    FIELD_TEMPLATE,
    INSTANCE_TEMPLATE,
    METHOD_TEMPLATE,
    PARAMETER_TEMPLATE,
    PROPERTY_TEMPLATE,
    RECOVERABLE_LIFETIME_TEMPLATE,
    SYNCHRONIZED_LIFETIME_TEMPLATE,
    TRANSIENT_LIFETIME_TEMPLATE,
    render,
)

if TYPE_CHECKING:
    from dicompose.context import ResolutionContext
    from dicompose.lifetime import LifetimeManager
    from dicompose.registration import Pipeline, Registration
    from dicompose.selection import ParameterDescriptor, SelectedMembers


class SourceNamespace:
    """Global names of the objects a compiled pipeline refers to."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {"NO_VALUE": NO_VALUE, "annotate": annotate}
        self._counter = itertools.count()

    def add(self, value: Any, prefix: str = "value") -> str:
        name = f"_{prefix}_{next(self._counter)}"
        self.values[name] = value
        return name


class Processor(ABC):
    """One build step."""

    @abstractmethod
    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        """Return a closure running this step and then ``next_step``."""

    @abstractmethod
    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        """Return the source of this step, or an empty string when it has nothing to do."""


def _resolve_arguments(
    context: ResolutionContext,
    owner: Any,
    parameters: tuple[ParameterDescriptor, ...],
    markers: tuple[ParameterMarker, ...],
) -> tuple[list[Any], dict[str, Any]]:
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for parameter, marker in zip(parameters, markers):
        try:
            value = context.resolve_parameter(owner, parameter.name, parameter.value)
        except Exception as exc:
            annotate(exc, marker)
            raise
        if parameter.positional_only:
            args.append(value)
        else:
            kwargs[parameter.name] = value
    return args, kwargs


def _emit_arguments(
    owner: Any,
    parameters: tuple[ParameterDescriptor, ...],
    namespace: SourceNamespace,
) -> tuple[str, str]:
    blocks: list[str] = []
    arguments: list[str] = []
    owner_name = namespace.add(owner, "owner")
    for index, parameter in enumerate(parameters):
        target = f"arg_{index}"
        blocks.append(
            render(
                PARAMETER_TEMPLATE,
                target=target,
                owner=owner_name,
                parameter_name=repr(parameter.name),
                value=namespace.add(parameter.value),
                marker=namespace.add(ParameterMarker(owner, parameter.name), "marker"),
            ),
        )
        arguments.append(target if parameter.positional_only else f"{parameter.name}={target}")
    return "\n".join(blocks), ", ".join(arguments)


class ConstructorProcessor(Processor):
    """Create the instance, unless the context already carries one (build-up).

    A Per-Resolve value is recorded as soon as the constructor returns so that
    member injection further down the graph can reach it.
    """

    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        descriptor = members.constructor  # type: ignore[union-attr]
        constructor = descriptor.constructor
        owner = descriptor.owner
        parameters = descriptor.parameters
        markers = tuple(ParameterMarker(owner, parameter.name) for parameter in parameters)
        constructor_marker = ConstructorMarker(owner, descriptor.signature)
        manager = registration.lifetime_manager
        record = manager if isinstance(manager, PerResolveLifetimeManager) else None

        def construct(context: ResolutionContext) -> Any:
            if context.existing is NO_VALUE:
                try:
                    args, kwargs = _resolve_arguments(context, owner, parameters, markers)
                    instance = constructor(*args, **kwargs)
                except Exception as exc:
                    annotate(exc, constructor_marker)
                    raise
                context.existing = instance
                if record is not None:
                    record.set_value(instance, context)
            return next_step(context)

        return construct

    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        descriptor = members.constructor  # type: ignore[union-attr]
        parameters, arguments = _emit_arguments(descriptor.owner, descriptor.parameters, namespace)
        manager = registration.lifetime_manager
        record = ""
        if isinstance(manager, PerResolveLifetimeManager):
            record = f"{namespace.add(manager, 'manager')}.set_value(existing, context)"
        return render(
            CONSTRUCTOR_TEMPLATE,
            parameters=parameters,
            constructor=namespace.add(descriptor.constructor, "constructor"),
            arguments=arguments,
            marker=namespace.add(ConstructorMarker(descriptor.owner, descriptor.signature), "marker"),
            record=record,
        )


class FactoryProcessor(Processor):
    """Call the registered ``factory(container, type, name)``."""

    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        factory = registration.factory

        def create(context: ResolutionContext) -> Any:
            if context.existing is NO_VALUE:
                context.existing = factory(context.container, context.dependency_type, context.name)
            return next_step(context)

        return create

    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        return render(FACTORY_TEMPLATE, factory=namespace.add(registration.factory, "factory"))


def _missing_instance(context: ResolutionContext) -> DIComposeInvalidRegistrationError:
    return DIComposeInvalidRegistrationError(
        f"The instance registered for {context.dependency_type!r} is no longer available.",
    )


class InstanceProcessor(Processor):
    """Reached only when the lifetime manager lost the registered instance."""

    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        def missing(context: ResolutionContext) -> Any:
            if context.existing is NO_VALUE:
                raise _missing_instance(context)
            return next_step(context)

        return missing

    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        return render(INSTANCE_TEMPLATE, missing_instance=namespace.add(_missing_instance, "error"))


class FieldProcessor(Processor):
    """Assign injected instance attributes."""

    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        if members is None or not members.fields:
            return next_step
        fields = tuple(
            (field.owner, field.name, field.value, FieldMarker(field.owner, field.name))
            for field in members.fields
        )

        def inject_fields(context: ResolutionContext) -> Any:
            existing = context.existing
            for owner, name, value, marker in fields:
                try:
                    setattr(existing, name, context.resolve_field(owner, name, value))
                except Exception as exc:
                    annotate(exc, marker)
                    raise
            return next_step(context)

        return inject_fields

    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        if members is None:
            return ""
        return "\n".join(
            render(
                FIELD_TEMPLATE,
                field_name=field.name,
                owner=namespace.add(field.owner, "owner"),
                field_literal=repr(field.name),
                value=namespace.add(field.value),
                marker=namespace.add(FieldMarker(field.owner, field.name), "marker"),
            )
            for field in members.fields
        )


class PropertyProcessor(Processor):
    """Set injected properties through their setters."""

    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        if members is None or not members.properties:
            return next_step
        properties = tuple(
            (prop.owner, prop.name, prop.value, PropertyMarker(prop.owner, prop.name))
            for prop in members.properties
        )

        def inject_properties(context: ResolutionContext) -> Any:
            existing = context.existing
            for owner, name, value, marker in properties:
                try:
                    setattr(existing, name, context.resolve_property(owner, name, value))
                except Exception as exc:
                    annotate(exc, marker)
                    raise
            return next_step(context)

        return inject_properties

    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        if members is None:
            return ""
        return "\n".join(
            render(
                PROPERTY_TEMPLATE,
                property_name=prop.name,
                owner=namespace.add(prop.owner, "owner"),
                property_literal=repr(prop.name),
                value=namespace.add(prop.value),
                marker=namespace.add(PropertyMarker(prop.owner, prop.name), "marker"),
            )
            for prop in members.properties
        )


class MethodProcessor(Processor):
    """Call injection methods with resolved arguments, in declaration order."""

    def get_resolver(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        next_step: Pipeline,
    ) -> Pipeline:
        if members is None or not members.methods:
            return next_step
        methods = tuple(
            (
                method.owner,
                method.name,
                method.parameters,
                tuple(ParameterMarker(method.owner, parameter.name) for parameter in method.parameters),
                MethodMarker(method.owner, method.name, method.signature),
            )
            for method in members.methods
        )

        def call_methods(context: ResolutionContext) -> Any:
            existing = context.existing
            for owner, name, parameters, parameter_markers, marker in methods:
                try:
                    args, kwargs = _resolve_arguments(context, owner, parameters, parameter_markers)
                    getattr(existing, name)(*args, **kwargs)
                except Exception as exc:
                    annotate(exc, marker)
                    raise
            return next_step(context)

        return call_methods

    def emit(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        namespace: SourceNamespace,
    ) -> str:
        if members is None:
            return ""
        blocks = []
        for method in members.methods:
            parameters, arguments = _emit_arguments(method.owner, method.parameters, namespace)
            blocks.append(
                render(
                    METHOD_TEMPLATE,
                    parameters=parameters,
                    method_name=method.name,
                    arguments=arguments,
                    marker=namespace.add(
                        MethodMarker(method.owner, method.name, method.signature),
                        "marker",
                    ),
                ),
            )
        return "\n".join(blocks)


def _lifetime_template(manager: LifetimeManager) -> str:
    if isinstance(manager, TransientLifetimeManager):
        return TRANSIENT_LIFETIME_TEMPLATE
    if manager.synchronized:
        return SYNCHRONIZED_LIFETIME_TEMPLATE
    if manager.requires_recovery:
        return RECOVERABLE_LIFETIME_TEMPLATE
    return CACHED_LIFETIME_TEMPLATE


class LifetimeStep:
    """Outermost step: cycle check, lifetime cache, build-once and failure reporting."""

    def get_resolver(self, registration: Registration, build: Pipeline) -> Pipeline:
        manager = registration.lifetime_manager

        if isinstance(manager, TransientLifetimeManager):

            def transient(context: ResolutionContext) -> Any:
                try:
                    value = context.check_recursion()
                    if value is not NO_VALUE:
                        return value
                    return build(context)
                except Exception as exc:
                    context.fail(exc)

            return transient

        if manager.synchronized:
            building = manager.building  # type: ignore[attr-defined]

            def synchronized(context: ResolutionContext) -> Any:
                try:
                    value = context.check_recursion()
                    if value is not NO_VALUE:
                        return value
                    value = manager.get_value(context)
                    if value is not NO_VALUE:
                        return value
                    with building():
                        value = manager.get_value(context)
                        if value is not NO_VALUE:
                            return value
                        value = build(context)
                        manager.set_value(value, context)
                    return value
                except Exception as exc:
                    context.fail(exc)

            return synchronized

        requires_recovery = manager.requires_recovery

        def cached(context: ResolutionContext) -> Any:
            try:
                value = context.check_recursion()
                if value is not NO_VALUE:
                    return value
                value = manager.get_value(context)
                if value is not NO_VALUE:
                    return value
                if requires_recovery:
                    context.add_recovery(manager)
                value = build(context)
                manager.set_value(value, context)
                if requires_recovery:
                    context.remove_recovery(manager)
                return value
            except Exception as exc:
                context.fail(exc)

        return cached

    def get_build_up(self, build: Pipeline) -> Pipeline:
        def build_up(context: ResolutionContext) -> Any:
            try:
                return build(context)
            except Exception as exc:
                context.fail(exc)

        return build_up

    def emit(self, registration: Registration, namespace: SourceNamespace) -> str:
        manager = registration.lifetime_manager
        return render(_lifetime_template(manager), manager=namespace.add(manager, "manager"))
