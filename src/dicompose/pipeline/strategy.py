from __future__ import annotations

from enum import Enum


class PipelineStrategy(Enum):
    """Select how a container turns build steps into pipelines.

    The strategy is chosen once when the root container is created and is
    shared by its children, so one resolve call never mixes strategies.
    """

    INTERPRETED = "interpreted"
    """Chain one closure per build step. Cheap to build."""

    COMPILED = "compiled"
    """Render all build steps into one Python function and compile it once."""

    ADAPTIVE = "adaptive"
    """Start interpreted and switch to compiled after ``promotion_threshold`` calls."""


DEFAULT_PROMOTION_THRESHOLD = 64
