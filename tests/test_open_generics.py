"""Tests for open generic registrations and their specializations."""

from typing import Annotated, Generic, TypeVar

import pytest

from dicompose import (
    Container,
    DIComposeInvalidRegistrationError,
    DIComposeResolutionFailedError,
    Dependency,
    Lifetime,
)

T = TypeVar("T")
U = TypeVar("U")


class User:
    pass


class Order:
    pass


class Repository(Generic[T]):
    pass


class SqlRepository(Repository[T]):
    def __init__(self, model: T) -> None:
        self.model = model


class CachedRepository(Repository[T]):
    inner: Annotated[SqlRepository[T], Dependency()]


class PairRepository(Repository[T], Generic[T, U]):
    pass


class Box(Generic[T]):
    def __init__(self, value: object) -> None:
        self.value = value


class UserService:
    def __init__(self, users: Repository[User]) -> None:
        self.users = users


class TestSpecialization:
    def test_resolves_closed_type(self, container: Container) -> None:
        """A closed generic key resolves through the open registration."""
        container.register_type(Repository, SqlRepository)

        repository = container.resolve(Repository[User])

        assert isinstance(repository, SqlRepository)
        assert isinstance(repository.model, User)

    def test_type_variables_are_substituted_in_members(self, container: Container) -> None:
        """Type variables in marked members follow the specialization."""
        container.register_type(Repository, CachedRepository)

        repository = container.resolve(Repository[Order])

        assert isinstance(repository, CachedRepository)
        assert isinstance(repository.inner.model, Order)

    def test_dependency_on_closed_type(self, container: Container) -> None:
        """Constructor parameters annotated with closed generics are specialized."""
        container.register_type(Repository, SqlRepository)

        service = container.resolve(UserService)

        assert isinstance(service.users.model, User)

    def test_each_closed_type_has_its_own_singleton(self, container: Container) -> None:
        """Singleton lifetimes apply per specialization."""
        container.register_type(Repository, SqlRepository, lifetime=Lifetime.SINGLETON)

        users = container.resolve(Repository[User])
        orders = container.resolve(Repository[Order])

        assert users is container.resolve(Repository[User])
        assert users is not orders
        assert isinstance(orders.model, Order)

    def test_specializations_are_cached(self, container: Container) -> None:
        """A specialization is realized once and reused from child containers."""
        container.register_type(Repository, SqlRepository, lifetime=Lifetime.SINGLETON)
        child = container.create_child_container()

        assert child.resolve(Repository[User]) is container.resolve(Repository[User])

    def test_closed_registration_wins(self, container: Container) -> None:
        """An explicit closed registration takes precedence over the open one."""

        class UserRepository(Repository[User]):
            pass

        container.register_type(Repository, SqlRepository)
        container.register_type(Repository[User], UserRepository)

        assert isinstance(container.resolve(Repository[User]), UserRepository)
        assert isinstance(container.resolve(Repository[Order]), SqlRepository)

    def test_open_factory_registration(self, container: Container) -> None:
        """Factories registered for an open generic receive the closed type."""
        container.register_factory(Box, lambda c, dependency_type, name: Box(dependency_type))

        assert container.resolve(Box[int]).value == Box[int]

    def test_reregistration_drops_specializations(self, container: Container) -> None:
        """Replacing the open registration discards previously realized specializations."""
        container.register_type(Repository, SqlRepository, lifetime=Lifetime.SINGLETON)
        first = container.resolve(Repository[User])

        container.register_type(Repository, CachedRepository, lifetime=Lifetime.SINGLETON)

        second = container.resolve(Repository[User])
        assert second is not first
        assert isinstance(second, CachedRepository)


class TestQueries:
    def test_is_registered_for_closed_type(self, container: Container) -> None:
        """A closed key counts as registered when its open generic is."""
        container.register_type(Repository, SqlRepository)

        assert container.is_registered(Repository[User])
        assert container.can_resolve(Repository[Order])

    def test_resolve_all_specializes(self, container: Container) -> None:
        """resolve_all includes named open generic registrations."""
        container.register_type(Repository, SqlRepository, name="sql")
        container.register_type(Repository, CachedRepository, name="cached")

        repositories = list(container.resolve_all(Repository[User]))

        assert sorted(type(r).__name__ for r in repositories) == ["CachedRepository", "SqlRepository"]

    def test_resolve_array_specializes(self, container: Container) -> None:
        """resolve_array specializes named open generic registrations."""
        container.register_type(Repository, SqlRepository, name="sql")

        repositories = container.resolve_array(Repository[User])

        assert [type(r) for r in repositories] == [SqlRepository]


class TestInvalidGenerics:
    def test_open_implementation_needs_open_abstraction(self, container: Container) -> None:
        """A closed abstraction cannot map to an open implementation."""
        with pytest.raises(DIComposeInvalidRegistrationError, match="open generic"):
            container.register_type(User, SqlRepository)

    def test_resolving_the_open_type_fails(self, container: Container) -> None:
        """The unsubscripted generic itself cannot be built."""
        container.register_type(Repository, SqlRepository)

        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(Repository)

        assert isinstance(exc_info.value.__cause__, DIComposeInvalidRegistrationError)

    def test_type_argument_count_mismatch(self, container: Container) -> None:
        """Specialization fails when the implementation takes a different number of arguments."""
        container.register_type(Repository, PairRepository)

        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(Repository[User])

        assert "expected 2 type argument(s)" in str(exc_info.value.__cause__)
