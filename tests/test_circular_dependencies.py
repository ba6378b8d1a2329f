"""Tests for cycle detection along the resolve call chain."""

from typing import Annotated

import pytest

from dicompose import (
    Container,
    DIComposeCircularDependencyError,
    DIComposeResolutionFailedError,
    Dependency,
    Lifetime,
    NamedType,
)


class ServiceA:
    def __init__(self, b: "ServiceB") -> None:
        self.b = b


class ServiceB:
    def __init__(self, a: ServiceA) -> None:
        self.a = a


class SelfReferencing:
    def __init__(self, other: "SelfReferencing") -> None:
        self.other = other


class Wrapper:
    def __init__(self, inner: Annotated["Wrapper", Dependency("inner")]) -> None:
        self.inner = inner


class Leaf:
    pass


class Left:
    def __init__(self, leaf: Leaf) -> None:
        self.leaf = leaf


class Right:
    def __init__(self, leaf: Leaf) -> None:
        self.leaf = leaf


class Diamond:
    def __init__(self, left: Left, right: Right) -> None:
        self.left = left
        self.right = right


class Parent:
    def __init__(self) -> None:
        self._child: Child | None = None

    @property
    def child(self) -> Annotated["Child", Dependency()]:
        return self._child

    @child.setter
    def child(self, value: "Child") -> None:
        self._child = value


class Child:
    def __init__(self, parent: Parent) -> None:
        self.parent = parent


class Family:
    def __init__(self, parent: Parent, child: Child) -> None:
        self.parent = parent
        self.child = child


class TestCycles:
    def test_constructor_cycle_is_detected(self, container: Container) -> None:
        """Two transients depending on each other form a cycle."""
        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(ServiceA)

        cause = exc_info.value.__cause__
        assert isinstance(cause, DIComposeCircularDependencyError)
        assert cause.dependency_type is ServiceA

    def test_self_reference_is_detected(self, container: Container) -> None:
        """A type depending on itself is a cycle."""
        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(SelfReferencing)

        assert isinstance(exc_info.value.__cause__, DIComposeCircularDependencyError)

    def test_singleton_cycle_is_detected(self, container_singleton: Container) -> None:
        """Caching lifetimes do not hide a constructor cycle."""
        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container_singleton.resolve(ServiceB)

        assert isinstance(exc_info.value.__cause__, DIComposeCircularDependencyError)

    def test_cycle_detection_is_repeatable(self, container: Container) -> None:
        """A failed resolve leaves no state behind that changes the next attempt."""
        for _ in range(3):
            with pytest.raises(DIComposeResolutionFailedError):
                container.resolve(ServiceA)

    def test_trail_shows_the_cycle(self, container: Container) -> None:
        """The failure trail lists each dependency on the cycle."""
        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(ServiceA)

        message = str(exc_info.value)
        assert "while resolving:  ServiceA" in message
        assert "while resolving:  ServiceB" in message

    def test_same_type_with_other_name_is_not_a_cycle(self, container: Container) -> None:
        """Cycle detection compares the name as well as the type."""
        sentinel = object.__new__(Wrapper)
        container.register_type(Wrapper)
        container.register_instance(Wrapper, sentinel, name="inner")

        assert container.resolve(Wrapper).inner is sentinel
        assert NamedType(Wrapper, "inner") != NamedType(Wrapper)


class TestSharedDependencies:
    def test_diamond_is_not_a_cycle(self, container: Container) -> None:
        """Siblings resolving the same type are not ancestors of each other."""
        diamond = container.resolve(Diamond)

        assert isinstance(diamond.left.leaf, Leaf)
        assert diamond.left.leaf is not diamond.right.leaf

    def test_diamond_with_per_resolve_leaf(self, container: Container) -> None:
        """A per-resolve leaf is shared by both branches of a diamond."""
        container.register_type(Leaf, lifetime=Lifetime.PER_RESOLVE)

        diamond = container.resolve(Diamond)

        assert diamond.left.leaf is diamond.right.leaf


class TestPerResolveBackReferences:
    def test_property_back_reference_reuses_instance(self, container: Container) -> None:
        """A per-resolve parent injected into its own child through a property is reused."""
        container.register_type(Parent, lifetime=Lifetime.PER_RESOLVE)

        parent = container.resolve(Parent)

        assert parent.child.parent is parent

    def test_graph_shares_per_resolve_instance(self, container: Container) -> None:
        """Every path to a per-resolve parent in one graph reaches the same instance."""
        container.register_type(Parent, lifetime=Lifetime.PER_RESOLVE)

        family = container.resolve(Family)

        assert family.parent is family.child.parent
        assert family.parent.child.parent is family.parent

    def test_transient_root_still_cycles(self, container: Container) -> None:
        """Starting from the transient side the recursion revisits a transient."""
        container.register_type(Parent, lifetime=Lifetime.PER_RESOLVE)

        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(Child)

        cause = exc_info.value.__cause__
        assert isinstance(cause, DIComposeCircularDependencyError)
        assert cause.dependency_type is Child

    def test_transient_back_reference_is_a_cycle(self, container: Container) -> None:
        """Without a per-resolve lifetime the back reference is a genuine cycle."""
        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve(Parent)

        assert isinstance(exc_info.value.__cause__, DIComposeCircularDependencyError)
