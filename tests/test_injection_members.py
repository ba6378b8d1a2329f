"""Tests for member selection: markers, explicit directives and invalid shapes."""

import abc
from typing import Annotated, ClassVar, Final

import pytest

from dicompose import (
    Container,
    DIComposeInvalidRegistrationError,
    DIComposeResolutionFailedError,
    Dependency,
    InjectionConstructor,
    InjectionField,
    InjectionMethod,
    InjectionProperty,
    OptionalDependency,
    OptionalParameter,
    ResolvedParameter,
    injection_constructor,
    injection_method,
)


class Logger:
    pass


class FileLogger(Logger):
    pass


class Database:
    pass


class Missing(abc.ABC):
    @abc.abstractmethod
    def run(self) -> None: ...


class Marked:
    logger: Annotated[Logger, Dependency("file")]
    optional: Annotated[Missing, OptionalDependency()]
    plain: Logger

    def __init__(self, db: Database) -> None:
        self.db = db
        self.initialized_with: list[object] = []

    @injection_method
    def initialize(self, db: Database, logger: Annotated[Logger, Dependency("file")]) -> None:
        self.initialized_with = [db, logger]


class OptionalConsumer:
    def __init__(self, missing: Annotated[Missing, OptionalDependency()], maybe: Missing | None) -> None:
        self.missing = missing
        self.maybe = maybe


class FactoryBuilt:
    def __init__(self, value: str) -> None:
        self.value = value

    @classmethod
    @injection_constructor
    def create(cls, db: Database) -> "FactoryBuilt":
        instance = cls("from-create")
        instance.db = db
        return instance


class Configurable:
    label: str

    def __init__(self, name: str, db: Database) -> None:
        self.name = name
        self.db = db
        self._logger: Logger | None = None
        self.configured: list[object] = []

    @property
    def logger(self) -> Logger:
        return self._logger

    @logger.setter
    def logger(self, value: Logger) -> None:
        self._logger = value

    def configure(self, retries: int, db: Database) -> None:
        self.configured = [retries, db]


class ReadOnlyProperty:
    @property
    def logger(self) -> Annotated[Logger, Dependency()]:
        return Logger()


class StaticField:
    logger: ClassVar[Annotated[Logger, Dependency()]]


class FinalField:
    logger: Final[Annotated[Logger, Dependency()]]


class StaticMethod:
    @staticmethod
    @injection_method
    def setup(logger: Logger) -> None: ...


class AsyncMethod:
    @injection_method
    async def setup(self, logger: Logger) -> None: ...


class Ambiguous:
    @classmethod
    @injection_constructor
    def first(cls) -> "Ambiguous":
        return cls()

    @classmethod
    @injection_constructor
    def second(cls) -> "Ambiguous":
        return cls()


class Unannotated:
    def __init__(self, value) -> None:  # noqa: ANN001
        self.value = value


class Unrelated:
    broken: "UndefinedName"  # noqa: F821

    def __init__(self, db: Database) -> None:
        self.db = db


def _invalid_cause(container: Container, dependency_type: type) -> DIComposeInvalidRegistrationError:
    with pytest.raises(DIComposeResolutionFailedError) as exc_info:
        container.resolve(dependency_type)
    cause = exc_info.value.__cause__
    assert isinstance(cause, DIComposeInvalidRegistrationError)
    return cause


class TestMarkers:
    def test_marked_fields_and_methods(self, container: Container) -> None:
        """Annotated markers select fields and injection methods; plain annotations are ignored."""
        container.register_type(Logger, FileLogger, name="file")

        marked = container.resolve(Marked)

        assert isinstance(marked.db, Database)
        assert isinstance(marked.logger, FileLogger)
        assert marked.optional is None
        assert not hasattr(marked, "plain")
        assert isinstance(marked.initialized_with[0], Database)
        assert isinstance(marked.initialized_with[1], FileLogger)

    def test_optional_dependencies(self, container: Container) -> None:
        """Optional parameters resolve to None when they cannot be resolved."""
        consumer = container.resolve(OptionalConsumer)

        assert consumer.missing is None
        assert consumer.maybe is None

    def test_optional_dependency_resolves_when_possible(self, container: Container) -> None:
        """Optional parameters use the registration when one exists."""

        class Impl(Missing):
            def run(self) -> None:
                pass

        container.register_type(Missing, Impl)

        consumer = container.resolve(OptionalConsumer)

        assert isinstance(consumer.missing, Impl)
        assert isinstance(consumer.maybe, Impl)

    def test_marked_constructor(self, container: Container) -> None:
        """A classmethod marked with injection_constructor replaces __init__."""
        built = container.resolve(FactoryBuilt)

        assert built.value == "from-create"
        assert isinstance(built.db, Database)

    def test_unrelated_unresolvable_annotations_are_ignored(self, container: Container) -> None:
        """Annotations that cannot be evaluated do not matter unless they are marked."""
        assert isinstance(container.resolve(Unrelated).db, Database)


class TestDirectives:
    def test_explicit_constructor_values(self, container: Container) -> None:
        """InjectionConstructor supplies constants and resolved values in order."""
        container.register_type(
            Configurable,
            injection_members=[InjectionConstructor("explicit", ResolvedParameter())],
        )

        instance = container.resolve(Configurable)

        assert instance.name == "explicit"
        assert isinstance(instance.db, Database)

    def test_class_values_are_resolved(self, container: Container) -> None:
        """A class given as a directive value is resolved, not injected as is."""
        container.register_type(
            Configurable,
            injection_members=[InjectionConstructor("x", Database)],
        )

        assert isinstance(container.resolve(Configurable).db, Database)

    def test_property_field_and_method_directives(self, container: Container) -> None:
        """Directives inject members that carry no markers."""
        container.register_type(Logger, FileLogger)
        container.register_type(
            Configurable,
            injection_members=[
                InjectionConstructor("name", Database),
                InjectionProperty("logger"),
                InjectionField("label", "a label"),
                InjectionMethod("configure", 3, ResolvedParameter()),
            ],
        )

        instance = container.resolve(Configurable)

        assert isinstance(instance.logger, FileLogger)
        assert instance.label == "a label"
        assert instance.configured[0] == 3
        assert isinstance(instance.configured[1], Database)

    def test_optional_parameter_directive(self, container: Container) -> None:
        """OptionalParameter resolves to None for unresolvable types."""
        container.register_type(
            Configurable,
            injection_members=[
                InjectionConstructor("n", Database),
                InjectionField("label", OptionalParameter(Missing)),
            ],
        )

        assert container.resolve(Configurable).label is None

    def test_directives_apply_to_build_up(self, container: Container) -> None:
        """build_up runs member injection without calling the constructor."""
        container.register_type(
            Configurable,
            injection_members=[
                InjectionConstructor("n", Database),
                InjectionField("label", "built up"),
            ],
        )
        existing = Configurable("mine", Database())

        result = container.build_up(Configurable, existing)

        assert result is existing
        assert existing.name == "mine"
        assert existing.label == "built up"


class TestInvalidShapes:
    def test_readonly_property(self, container: Container) -> None:
        """A marked property without a setter cannot be injected."""
        cause = _invalid_cause(container, ReadOnlyProperty)

        assert "Readonly property 'logger'" in str(cause)

    def test_class_variable(self, container: Container) -> None:
        """Marked ClassVar fields are rejected."""
        assert "Static field 'logger'" in str(_invalid_cause(container, StaticField))

    def test_final_field(self, container: Container) -> None:
        """Marked Final fields are rejected."""
        assert "Readonly field 'logger'" in str(_invalid_cause(container, FinalField))

    def test_static_method(self, container: Container) -> None:
        """Static methods cannot be injection methods."""
        assert "Static method 'setup'" in str(_invalid_cause(container, StaticMethod))

    def test_async_method(self, container: Container) -> None:
        """Coroutine functions cannot be injection methods."""
        assert "Async method" in str(_invalid_cause(container, AsyncMethod))

    def test_ambiguous_constructors(self, container: Container) -> None:
        """Marking several constructors is ambiguous."""
        assert "multiple constructors marked" in str(_invalid_cause(container, Ambiguous))

    def test_directive_arity_mismatch(self, container: Container) -> None:
        """Directive values must match the parameter count."""
        container.register_type(Configurable, injection_members=[InjectionConstructor("only one")])

        assert "supplies 1 value(s)" in str(_invalid_cause(container, Configurable))

    def test_unannotated_parameter(self, container: Container) -> None:
        """A parameter without annotation or default cannot be inferred."""
        assert "has no annotation" in str(_invalid_cause(container, Unannotated))

    def test_unknown_property_directive(self, container: Container) -> None:
        """Directives must name existing members."""
        container.register_type(Database, injection_members=[InjectionProperty("nope")])

        assert "no property named 'nope'" in str(_invalid_cause(container, Database))

    def test_abstract_implementation(self, container: Container) -> None:
        """Abstract classes registered as their own implementation cannot be built."""
        container.register_type(Missing)

        assert "Abstract class" in str(_invalid_cause(container, Missing))

    def test_failure_is_reported_on_every_resolve(self, container: Container) -> None:
        """A registration whose pipeline cannot be built fails consistently."""
        for _ in range(2):
            _invalid_cause(container, ReadOnlyProperty)
