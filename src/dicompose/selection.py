"""Select which constructor, properties, fields and methods of a type get injected.

The default selector reads ``typing.Annotated`` markers and the decorators from
``dicompose.markers``. Explicit injection directives attached to a registration
always win over markers. The result is computed once per registration and
cached in its policy set.
"""

from __future__ import annotations

import inspect
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    ClassVar,
    Final,
    Protocol,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from dicompose.exceptions import DIComposeInvalidRegistrationError
from dicompose.injection import (
    InjectionConstructor,
    InjectionField,
    InjectionMethod,
    InjectionProperty,
    OptionalParameter,
    ResolvedParameter,
)
from dicompose.markers import (
    INJECTION_CONSTRUCTOR_ATTRIBUTE,
    INJECTION_METHOD_ATTRIBUTE,
    Dependency,
    OptionalDependency,
)
from dicompose.registration import Registration

_EMPTY = inspect.Parameter.empty
_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class DefaultedParameter:
    """Resolve only when explicitly registered, otherwise use the parameter default."""

    dependency_type: Any
    default: Any


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    name: str
    dependency_type: Any
    value: Any
    positional_only: bool = False


@dataclass(frozen=True, slots=True)
class ConstructorDescriptor:
    owner: Any
    constructor: Callable[..., Any]
    parameters: tuple[ParameterDescriptor, ...]
    signature: str


@dataclass(frozen=True, slots=True)
class PropertyDescriptor:
    owner: Any
    name: str
    dependency_type: Any
    value: Any


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    owner: Any
    name: str
    dependency_type: Any
    value: Any


@dataclass(frozen=True, slots=True)
class MethodDescriptor:
    owner: Any
    name: str
    parameters: tuple[ParameterDescriptor, ...]
    signature: str


@dataclass(frozen=True, slots=True)
class SelectedMembers:
    """Ordered injection members of one implementation type."""

    constructor: ConstructorDescriptor
    properties: tuple[PropertyDescriptor, ...] = ()
    fields: tuple[FieldDescriptor, ...] = ()
    methods: tuple[MethodDescriptor, ...] = ()


class MemberSelector(Protocol):
    """Yield the members of a type that participate in injection."""

    def select_members(self, implementation: Any, registration: Registration) -> SelectedMembers:
        """Return the members to inject, raising on an invalid registration shape."""


def get_selected_members(
    selector: MemberSelector,
    implementation: Any,
    registration: Registration,
) -> SelectedMembers:
    """Return the selection cached on the registration, computing it on first use."""
    members = registration.policies.get(SelectedMembers)
    if members is None:
        members = selector.select_members(implementation, registration)
        registration.policies[SelectedMembers] = members
    return members


def type_name(value: Any) -> str:
    return getattr(value, "__qualname__", None) or repr(value)


def _invalid(message: str) -> DIComposeInvalidRegistrationError:
    return DIComposeInvalidRegistrationError(message)


def _split_generic(implementation: Any) -> tuple[Any, dict[Any, Any]]:
    origin = get_origin(implementation)
    if origin is None or not isinstance(origin, type):
        return implementation, {}
    parameters = getattr(origin, "__parameters__", ())
    return origin, dict(zip(parameters, get_args(implementation)))


def _substitute(hint: Any, mapping: dict[Any, Any]) -> Any:
    if not mapping:
        return hint
    if isinstance(hint, TypeVar):
        return mapping.get(hint, hint)
    parameters = getattr(hint, "__parameters__", ())
    if parameters and all(parameter in mapping for parameter in parameters):
        return hint[tuple(mapping[parameter] for parameter in parameters)]
    return hint


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) in (Union, types.UnionType):
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1 and len(get_args(hint)) == 2:  # noqa: PLR2004
            return args[0], True
    return hint, False


def _read_annotation(hint: Any) -> tuple[Any, Any]:
    """Split a hint into its dependency type and marker (None when unmarked)."""
    marker = None
    if get_origin(hint) is Annotated:
        args = get_args(hint)
        hint = args[0]
        for metadata in args[1:]:
            if isinstance(metadata, (Dependency, OptionalDependency)):
                marker = metadata
    return hint, marker


def _value_from_annotation(hint: Any) -> tuple[Any, Any, bool]:
    """Return ``(dependency_type, value, is_marked)`` for an annotated member."""
    dependency_type, marker = _read_annotation(hint)
    dependency_type, is_optional = _unwrap_optional(dependency_type)
    if isinstance(marker, OptionalDependency) or (marker is None and is_optional):
        name = marker.name if marker is not None else None
        return dependency_type, OptionalParameter(dependency_type, name), marker is not None
    name = marker.name if marker is not None else None
    return dependency_type, ResolvedParameter(dependency_type, name), marker is not None


def _is_type_annotation(hint: Any) -> bool:
    return hint is type or get_origin(hint) is type


def _value_from_directive(value: Any, hint: Any, member: str) -> tuple[Any, Any]:
    """Normalize an explicit directive value against the member's annotation."""
    dependency_type = _value_from_annotation(hint)[0] if hint is not None else None
    if isinstance(value, (ResolvedParameter, OptionalParameter)):
        if value.dependency_type is None:
            if dependency_type is None:
                msg = f"Cannot infer the type to resolve for {member}; annotate it or pass a type."
                raise _invalid(msg)
            value = type(value)(dependency_type, value.name)
        return value.dependency_type, value
    if isinstance(value, type) and not _is_type_annotation(hint):
        return value, ResolvedParameter(value)
    return dependency_type, value


def _type_hints(obj: Any, owner: Any) -> dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except (NameError, TypeError) as exc:
        msg = f"Cannot read type annotations of {type_name(owner)}: {exc}"
        raise _invalid(msg) from exc


def _raw_annotations(obj: Any) -> dict[str, Any]:
    try:
        return inspect.get_annotations(obj)
    except (NameError, TypeError) as exc:
        msg = f"Cannot read type annotations of {type_name(obj)}: {exc}"
        raise _invalid(msg) from exc


def _may_be_marked(annotation: Any) -> bool:
    """Cheap pre-check so unrelated, unresolvable annotations are never evaluated."""
    if isinstance(annotation, str):
        return "Dependency" in annotation
    if get_origin(annotation) in (ClassVar, Final):
        args = get_args(annotation)
        return bool(args) and _may_be_marked(args[0])
    return _read_annotation(annotation)[1] is not None


def _class_attributes(cls: type) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        attributes.update(vars(klass))
    return attributes


def _has_flag(attribute: Any, flag: str) -> bool:
    return bool(
        getattr(attribute, flag, False) or getattr(getattr(attribute, "__func__", None), flag, False),
    )


def _signature_text(owner: Any, label: str, parameters: tuple[ParameterDescriptor, ...]) -> str:
    rendered = ", ".join(
        f"{parameter.name}: {type_name(parameter.dependency_type)}" for parameter in parameters
    )
    return f"{label}({rendered})"


class DefaultMemberSelector:
    """Ranks explicit directives first, then marked members, then ``__init__``."""

    def select_members(self, implementation: Any, registration: Registration) -> SelectedMembers:
        cls, mapping = _split_generic(implementation)
        constructor = self.select_constructor(implementation, cls, mapping, registration)
        constructor_names = {parameter.name for parameter in constructor.parameters}
        return SelectedMembers(
            constructor=constructor,
            properties=self.select_properties(cls, mapping, registration),
            fields=self.select_fields(cls, mapping, registration, constructor_names),
            methods=self.select_methods(cls, mapping, registration),
        )

    def select_constructor(
        self,
        implementation: Any,
        cls: Any,
        mapping: dict[Any, Any],
        registration: Registration,
    ) -> ConstructorDescriptor:
        if not isinstance(cls, type):
            msg = f"{implementation!r} is not a class and cannot be constructed."
            raise _invalid(msg)
        if getattr(cls, "_is_protocol", False):
            msg = f"Protocol {type_name(cls)} cannot be constructed; register an implementation."
            raise _invalid(msg)
        if inspect.isabstract(cls):
            msg = f"Abstract class {type_name(cls)} cannot be constructed; register an implementation."
            raise _invalid(msg)

        explicit = [m for m in registration.injection_members if isinstance(m, InjectionConstructor)]
        if len(explicit) > 1:
            msg = f"Multiple InjectionConstructor directives were registered for {type_name(cls)}."
            raise _invalid(msg)

        marked = [
            name
            for name, attribute in _class_attributes(cls).items()
            if name != "__init__" and _has_flag(attribute, INJECTION_CONSTRUCTOR_ATTRIBUTE)
        ]
        if explicit or not marked:
            return self._init_constructor(implementation, cls, mapping, explicit)
        if len(marked) > 1:
            msg = (
                f"The type {type_name(cls)} has multiple constructors marked for injection "
                f"({', '.join(marked)}). Unable to select the constructor."
            )
            raise _invalid(msg)
        return self._marked_constructor(cls, mapping, marked[0])

    def _init_constructor(
        self,
        implementation: Any,
        cls: type,
        mapping: dict[Any, Any],
        explicit: list[InjectionConstructor],
    ) -> ConstructorDescriptor:
        init = cls.__init__
        if init is object.__init__:
            signature_parameters: list[inspect.Parameter] = []
            hints: dict[str, Any] = {}
        else:
            try:
                signature_parameters = list(inspect.signature(init).parameters.values())[1:]
            except (TypeError, ValueError):
                signature_parameters = []
            hints = _type_hints(init, cls)
        values = explicit[0].values if explicit else None
        parameters = self._parameters(cls, type_name(cls), signature_parameters, hints, mapping, values)
        return ConstructorDescriptor(
            owner=cls,
            constructor=implementation,
            parameters=parameters,
            signature=_signature_text(cls, type_name(cls), parameters),
        )

    def _marked_constructor(self, cls: type, mapping: dict[Any, Any], name: str) -> ConstructorDescriptor:
        attribute = inspect.getattr_static(cls, name)
        if not isinstance(attribute, (classmethod, staticmethod)):
            msg = (
                f"Constructor '{name}' of {type_name(cls)} is marked for injection but is not "
                "a classmethod or staticmethod."
            )
            raise _invalid(msg)
        constructor = getattr(cls, name)
        function = attribute.__func__
        label = f"{type_name(cls)}.{name}"
        parameters = self._parameters(
            cls,
            label,
            list(inspect.signature(constructor).parameters.values()),
            _type_hints(function, cls),
            mapping,
            None,
        )
        return ConstructorDescriptor(
            owner=cls,
            constructor=constructor,
            parameters=parameters,
            signature=_signature_text(cls, label, parameters),
        )

    def _parameters(
        self,
        owner: type,
        label: str,
        signature_parameters: list[inspect.Parameter],
        hints: dict[str, Any],
        mapping: dict[Any, Any],
        values: tuple[Any, ...] | None,
    ) -> tuple[ParameterDescriptor, ...]:
        candidates = [p for p in signature_parameters if p.kind not in _SKIPPED_KINDS]
        if values is not None and len(values) != len(candidates):
            msg = (
                f"The injection directive for {label} supplies {len(values)} value(s) but the "
                f"callable accepts {len(candidates)} parameter(s)."
            )
            raise _invalid(msg)

        descriptors: list[ParameterDescriptor] = []
        for index, parameter in enumerate(candidates):
            hint = hints.get(parameter.name)
            if hint is not None:
                hint = _substitute(hint, mapping)
            member = f"parameter '{parameter.name}' of {label}"
            positional_only = parameter.kind is inspect.Parameter.POSITIONAL_ONLY

            if values is not None:
                dependency_type, value = _value_from_directive(values[index], hint, member)
            elif hint is None:
                if parameter.default is not _EMPTY:
                    continue
                msg = f"Cannot infer the dependency for {member}: the parameter has no annotation."
                raise _invalid(msg)
            else:
                dependency_type, value, is_marked = _value_from_annotation(hint)
                if parameter.default is not _EMPTY and not is_marked:
                    value = DefaultedParameter(dependency_type, parameter.default)
            descriptors.append(
                ParameterDescriptor(
                    name=parameter.name,
                    dependency_type=dependency_type,
                    value=value,
                    positional_only=positional_only,
                ),
            )
        return tuple(descriptors)

    def select_properties(
        self,
        cls: type,
        mapping: dict[Any, Any],
        registration: Registration,
    ) -> tuple[PropertyDescriptor, ...]:
        attributes = _class_attributes(cls)
        selected: dict[str, PropertyDescriptor] = {}

        for member in registration.injection_members:
            if not isinstance(member, InjectionProperty) or member.name in selected:
                continue
            prop = attributes.get(member.name)
            if not isinstance(prop, property):
                msg = f"The type {type_name(cls)} has no property named '{member.name}'."
                raise _invalid(msg)
            self._validate_property(cls, member.name, prop)
            hint = self._property_hint(cls, prop, mapping)
            dependency_type, value = _value_from_directive(
                member.value,
                hint,
                f"property '{member.name}' of {type_name(cls)}",
            )
            selected[member.name] = PropertyDescriptor(cls, member.name, dependency_type, value)

        for name, attribute in attributes.items():
            if name in selected or not isinstance(attribute, property) or attribute.fget is None:
                continue
            raw = _raw_annotations(attribute.fget).get("return")
            if raw is None or not _may_be_marked(raw):
                continue
            hint = self._property_hint(cls, attribute, mapping)
            if hint is None or _read_annotation(hint)[1] is None:
                continue
            self._validate_property(cls, name, attribute)
            dependency_type, value, _ = _value_from_annotation(hint)
            selected[name] = PropertyDescriptor(cls, name, dependency_type, value)
        return tuple(selected.values())

    def _property_hint(self, cls: type, prop: property, mapping: dict[Any, Any]) -> Any:
        if prop.fget is not None:
            hint = _type_hints(prop.fget, cls).get("return")
            if hint is not None:
                return _substitute(hint, mapping)
        if prop.fset is not None:
            hints = _type_hints(prop.fset, cls)
            setter_parameters = [name for name in hints if name != "return"]
            if setter_parameters:
                return _substitute(hints[setter_parameters[-1]], mapping)
        return None

    def _validate_property(self, cls: type, name: str, prop: property) -> None:
        if prop.fset is None:
            msg = (
                f"Readonly property '{name}' on type '{type_name(cls)}' is marked for injection. "
                "Readonly properties cannot be injected"
            )
            raise _invalid(msg)

    def select_fields(
        self,
        cls: type,
        mapping: dict[Any, Any],
        registration: Registration,
        constructor_names: set[str],
    ) -> tuple[FieldDescriptor, ...]:
        explicit = [m for m in registration.injection_members if isinstance(m, InjectionField)]
        raw = [
            annotation
            for klass in cls.__mro__
            if klass is not object
            for annotation in _raw_annotations(klass).values()
        ]
        hints = _type_hints(cls, cls) if explicit or any(map(_may_be_marked, raw)) else {}
        attributes = _class_attributes(cls)
        selected: dict[str, FieldDescriptor] = {}

        for member in explicit:
            if member.name in selected:
                continue
            if isinstance(attributes.get(member.name), property):
                msg = f"'{member.name}' of {type_name(cls)} is a property; use InjectionProperty."
                raise _invalid(msg)
            hint = hints.get(member.name)
            if hint is not None:
                self._validate_field(cls, member.name, hint)
                hint = _substitute(hint, mapping)
            dependency_type, value = _value_from_directive(
                member.value,
                hint,
                f"field '{member.name}' of {type_name(cls)}",
            )
            selected[member.name] = FieldDescriptor(cls, member.name, dependency_type, value)

        for name, hint in hints.items():
            if name in selected or name in constructor_names:
                continue
            if isinstance(attributes.get(name), property):
                continue
            inner = hint
            if get_origin(hint) in (ClassVar, Final):
                args = get_args(hint)
                inner = args[0] if args else None
            if inner is None or _read_annotation(inner)[1] is None:
                continue
            self._validate_field(cls, name, hint)
            dependency_type, value, _ = _value_from_annotation(_substitute(hint, mapping))
            selected[name] = FieldDescriptor(cls, name, dependency_type, value)
        return tuple(selected.values())

    def _validate_field(self, cls: type, name: str, hint: Any) -> None:
        origin = get_origin(hint)
        if origin is ClassVar or hint is ClassVar:
            msg = (
                f"Static field '{name}' on type '{type_name(cls)}' is marked for injection. "
                "Static fields cannot be injected"
            )
            raise _invalid(msg)
        if origin is Final or hint is Final:
            msg = (
                f"Readonly field '{name}' on type '{type_name(cls)}' is marked for injection. "
                "Readonly fields cannot be injected"
            )
            raise _invalid(msg)

    def select_methods(
        self,
        cls: type,
        mapping: dict[Any, Any],
        registration: Registration,
    ) -> tuple[MethodDescriptor, ...]:
        attributes = _class_attributes(cls)
        selected: dict[str, MethodDescriptor] = {}

        for member in registration.injection_members:
            if not isinstance(member, InjectionMethod) or member.name in selected:
                continue
            attribute = attributes.get(member.name)
            if attribute is None:
                msg = f"The type {type_name(cls)} has no method named '{member.name}'."
                raise _invalid(msg)
            selected[member.name] = self._method(cls, mapping, member.name, attribute, member.values)

        for name, attribute in attributes.items():
            if name in selected or not _has_flag(attribute, INJECTION_METHOD_ATTRIBUTE):
                continue
            selected[name] = self._method(cls, mapping, name, attribute, None)
        return tuple(selected.values())

    def _method(
        self,
        cls: type,
        mapping: dict[Any, Any],
        name: str,
        attribute: Any,
        values: tuple[Any, ...] | None,
    ) -> MethodDescriptor:
        label = f"{type_name(cls)}.{name}"
        if isinstance(attribute, (staticmethod, classmethod)):
            msg = (
                f"Static method '{name}' on type '{type_name(cls)}' is marked for injection. "
                "Static methods cannot be injected"
            )
            raise _invalid(msg)
        if not inspect.isfunction(attribute):
            msg = f"'{name}' on type '{type_name(cls)}' is not a method and cannot be injected."
            raise _invalid(msg)
        if inspect.iscoroutinefunction(attribute) or inspect.isasyncgenfunction(attribute):
            msg = f"Async method '{label}' cannot be used for injection."
            raise _invalid(msg)
        parameters = self._parameters(
            cls,
            label,
            list(inspect.signature(attribute).parameters.values())[1:],
            _type_hints(attribute, cls),
            mapping,
            values,
        )
        return MethodDescriptor(
            owner=cls,
            name=name,
            parameters=parameters,
            signature=_signature_text(cls, name, parameters),
        )
