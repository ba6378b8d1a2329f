"""Tests for container disposal."""

import pytest

from dicompose import (
    Container,
    DIComposeContainerDisposedError,
    DIComposeResolutionFailedError,
    Lifetime,
    PipelineStrategy,
)


class Resource:
    closed_order: list[str] = []

    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True
        Resource.closed_order.append(type(self).__name__)


class First(Resource):
    pass


class Second(Resource):
    pass


class Failing(Resource):
    def close(self) -> None:
        raise OSError("cannot close")


@pytest.fixture(autouse=True)
def _reset_close_order() -> None:
    Resource.closed_order = []


class TestDispose:
    def test_disposes_in_reverse_registration_order(self, strategy: PipelineStrategy) -> None:
        """Owned instances are closed last registered first."""
        container = Container(strategy=strategy)
        container.register_type(First, lifetime=Lifetime.SINGLETON)
        container.register_type(Second, lifetime=Lifetime.SINGLETON)
        container.resolve(First)
        container.resolve(Second)

        container.dispose()

        assert Resource.closed_order == ["Second", "First"]

    def test_dispose_is_idempotent(self, strategy: PipelineStrategy) -> None:
        """Disposing twice closes instances once."""
        container = Container(strategy=strategy)
        container.register_type(First, lifetime=Lifetime.SINGLETON)
        container.resolve(First)

        container.dispose()
        container.dispose()

        assert Resource.closed_order == ["First"]
        assert container.is_disposed

    def test_shared_registration_disposed_once(self, strategy: PipelineStrategy) -> None:
        """A registration stored under several abstractions is disposed once."""
        container = Container(strategy=strategy)
        container.register_type({Resource, First}, First, lifetime=Lifetime.SINGLETON)
        container.resolve(Resource)

        container.dispose()

        assert Resource.closed_order == ["First"]

    def test_children_are_disposed_with_parent(self, strategy: PipelineStrategy) -> None:
        """Disposing a container disposes its children first."""
        container = Container(strategy=strategy)
        child = container.create_child_container()
        child.register_type(First, lifetime=Lifetime.HIERARCHICAL)
        container.register_type(Second, lifetime=Lifetime.SINGLETON)
        child.resolve(First)
        container.resolve(Second)

        container.dispose()

        assert child.is_disposed
        assert Resource.closed_order == ["First", "Second"]

    def test_child_dispose_leaves_parent_usable(self, container: Container) -> None:
        """A disposed child no longer affects its parent."""
        container.register_type(First, lifetime=Lifetime.SINGLETON)
        child = container.create_child_container()
        instance = child.resolve(First)

        child.dispose()

        assert not instance.closed
        assert container.resolve(First) is instance

    def test_transient_instances_are_not_tracked(self, strategy: PipelineStrategy) -> None:
        """Transient instances are owned by the caller."""
        container = Container(strategy=strategy)
        instance = container.resolve(First)

        container.dispose()

        assert not instance.closed

    def test_close_failures_propagate(self, strategy: PipelineStrategy) -> None:
        """Errors raised by close reach the caller of dispose."""
        container = Container(strategy=strategy)
        container.register_type(Failing, lifetime=Lifetime.SINGLETON)
        container.resolve(Failing)

        with pytest.raises(OSError, match="cannot close"):
            container.dispose()

    def test_context_manager_disposes(self, strategy: PipelineStrategy) -> None:
        """Leaving the with block disposes the container."""
        with Container(strategy=strategy) as container:
            container.register_type(First, lifetime=Lifetime.SINGLETON)
            instance = container.resolve(First)

        assert instance.closed
        assert container.is_disposed


class TestUseAfterDispose:
    def test_registration_fails(self, strategy: PipelineStrategy) -> None:
        """A disposed container rejects registrations."""
        container = Container(strategy=strategy)
        container.dispose()

        with pytest.raises(DIComposeContainerDisposedError):
            container.register_type(First)

    def test_child_creation_fails(self, strategy: PipelineStrategy) -> None:
        """A disposed container cannot create children."""
        container = Container(strategy=strategy)
        container.dispose()

        with pytest.raises(DIComposeContainerDisposedError):
            container.create_child_container()

    def test_resolve_fails(self, strategy: PipelineStrategy) -> None:
        """Resolving from a disposed child reports the disposal."""
        container = Container(strategy=strategy)
        child = container.create_child_container()
        child.dispose()

        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            child.resolve(First)

        assert isinstance(exc_info.value.__cause__, DIComposeContainerDisposedError)
        container.dispose()

    def test_resolve_all_fails(self, strategy: PipelineStrategy) -> None:
        """Iterating resolve_all on a disposed container reports a resolution failure."""
        container = Container(strategy=strategy)
        container.dispose()

        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            list(container.resolve_all(First))

        assert isinstance(exc_info.value.__cause__, DIComposeContainerDisposedError)

    def test_resolve_array_fails(self, strategy: PipelineStrategy) -> None:
        """resolve_array on a disposed container reports a resolution failure."""
        container = Container(strategy=strategy)
        container.dispose()

        with pytest.raises(DIComposeResolutionFailedError) as exc_info:
            container.resolve_array(First)

        assert isinstance(exc_info.value.__cause__, DIComposeContainerDisposedError)

    def test_child_instance_closed_with_child(self, strategy: PipelineStrategy) -> None:
        """Instances registered on a child are closed when that child is disposed."""
        container = Container(strategy=strategy)
        child = container.create_child_container()
        instance = First()
        child.register_instance(First, instance)

        child.dispose()

        assert instance.closed
        container.dispose()
