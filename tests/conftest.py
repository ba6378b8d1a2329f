"""Shared pytest fixtures for dicompose tests."""

from collections.abc import Iterator

import pytest

from dicompose.container import Container
from dicompose.lifetime import Lifetime
from dicompose.pipeline import PipelineStrategy

# Low enough that adaptive pipelines are promoted during ordinary tests.
ADAPTIVE_THRESHOLD = 2


@pytest.fixture(params=list(PipelineStrategy), ids=lambda strategy: strategy.value)
def strategy(request: pytest.FixtureRequest) -> PipelineStrategy:
    """Every behavioural test runs once per pipeline strategy."""
    return request.param


@pytest.fixture()
def container(strategy: PipelineStrategy) -> Iterator[Container]:
    """Default container with implicit registration enabled."""
    container = Container(strategy=strategy, promotion_threshold=ADAPTIVE_THRESHOLD)
    yield container
    container.dispose()


@pytest.fixture()
def container_no_autoregister(strategy: PipelineStrategy) -> Iterator[Container]:
    """Container that only resolves explicit registrations."""
    container = Container(
        strategy=strategy,
        promotion_threshold=ADAPTIVE_THRESHOLD,
        autoregister_concrete_types=False,
    )
    yield container
    container.dispose()


@pytest.fixture()
def container_singleton(strategy: PipelineStrategy) -> Iterator[Container]:
    """Container with singleton as the default lifetime."""
    container = Container(
        strategy=strategy,
        promotion_threshold=ADAPTIVE_THRESHOLD,
        default_lifetime=Lifetime.SINGLETON,
    )
    yield container
    container.dispose()
