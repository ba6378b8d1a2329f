from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any

from dicompose.exceptions import DIComposeInvalidRegistrationError
from dicompose.pipeline.processors import (
    ConstructorProcessor,
    FactoryProcessor,
    FieldProcessor,
    InstanceProcessor,
    LifetimeStep,
    MethodProcessor,
    Processor,
    PropertyProcessor,
    SourceNamespace,
)
from dicompose.pipeline.strategy import DEFAULT_PROMOTION_THRESHOLD, PipelineStrategy
from dicompose.pipeline.templates import MODULE_TEMPLATE, render
from dicompose.registration import RegistrationKind
from dicompose.selection import get_selected_members

if TYPE_CHECKING:
    from dicompose.context import ResolutionContext
    from dicompose.registration import Pipeline, Registration
    from dicompose.selection import MemberSelector, SelectedMembers

logger = logging.getLogger(__name__)

_FILENAME = "<dicompose-pipeline>"

_TYPE_PROCESSORS: tuple[Processor, ...] = (
    ConstructorProcessor(),
    FieldProcessor(),
    PropertyProcessor(),
    MethodProcessor(),
)
_FACTORY_PROCESSORS: tuple[Processor, ...] = (FactoryProcessor(),)
_INSTANCE_PROCESSORS: tuple[Processor, ...] = (InstanceProcessor(),)


def _existing(context: ResolutionContext) -> Any:
    return context.existing


class PipelineBuilder:
    """Build and cache the pipeline of each registration.

    A pipeline is built at most once per registration, under the
    registration's build lock, and is never mutated afterwards: re-registering
    creates a new registration and adaptive promotion replaces the cached
    callable.
    """

    def __init__(
        self,
        *,
        member_selector: MemberSelector,
        strategy: PipelineStrategy = PipelineStrategy.INTERPRETED,
        promotion_threshold: int = DEFAULT_PROMOTION_THRESHOLD,
    ) -> None:
        if promotion_threshold < 1:
            msg = f"promotion_threshold must be positive, got {promotion_threshold}."
            raise ValueError(msg)
        self.member_selector = member_selector
        self.strategy = strategy
        self.promotion_threshold = promotion_threshold
        self._lifetime_step = LifetimeStep()

    def get_pipeline(self, registration: Registration) -> Pipeline:
        """Return the cached pipeline of the registration, building it on first use."""
        pipeline = registration.pipeline
        if pipeline is not None:
            return pipeline
        with registration.build_lock:
            if registration.pipeline is None:
                self._build(registration)
            return registration.pipeline  # type: ignore[return-value]

    def get_build_up_pipeline(self, registration: Registration) -> Pipeline:
        """Return the pipeline that injects members into an already created instance."""
        self.get_pipeline(registration)
        return registration.build_up_pipeline  # type: ignore[return-value]

    def _build(self, registration: Registration) -> None:
        if registration.is_open_generic:
            msg = (
                f"{registration.key!r} is an open generic registration; resolve a "
                "parameterized type instead."
            )
            raise DIComposeInvalidRegistrationError(msg)
        processors = self._processors(registration)
        members = self._members(registration)

        if self.strategy is PipelineStrategy.COMPILED:
            pipeline, build_up = self.compile(registration, members, processors)
        else:
            pipeline, build_up = self.interpret(registration, members, processors)
            if self.strategy is PipelineStrategy.ADAPTIVE:
                pipeline = self._promote_after(registration, members, processors, pipeline)

        registration.build_up_pipeline = build_up
        registration.pipeline = pipeline
        logger.debug("Built %s pipeline for %r", self.strategy.value, registration)

    def _processors(self, registration: Registration) -> tuple[Processor, ...]:
        if registration.kind is RegistrationKind.FACTORY:
            return _FACTORY_PROCESSORS
        if registration.kind is RegistrationKind.INSTANCE:
            return _INSTANCE_PROCESSORS
        return _TYPE_PROCESSORS

    def _members(self, registration: Registration) -> SelectedMembers | None:
        if registration.kind is not RegistrationKind.TYPE:
            return None
        return get_selected_members(self.member_selector, registration.implementation, registration)

    def interpret(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        processors: tuple[Processor, ...],
    ) -> tuple[Pipeline, Pipeline]:
        """Chain the processors into closures, the first processor outermost."""
        build: Pipeline = _existing
        for processor in reversed(processors):
            build = processor.get_resolver(registration, members, build)
        return (
            self._lifetime_step.get_resolver(registration, build),
            self._lifetime_step.get_build_up(build),
        )

    def compile(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        processors: tuple[Processor, ...],
    ) -> tuple[Pipeline, Pipeline]:
        """Render the processors into one function and compile it."""
        namespace = SourceNamespace()
        steps = [processor.emit(registration, members, namespace) for processor in processors]
        source = render(
            MODULE_TEMPLATE,
            steps="\n".join(step for step in steps if step),
            lifetime=self._lifetime_step.emit(registration, namespace),
        )
        logger.debug("Generated pipeline source for %r:\n%s", registration, source)

        code = compile(source, filename=_FILENAME, mode="exec")
        generated = namespace.values
        exec(code, generated)  # noqa: S102
        return generated["pipeline"], generated["build_up"]

    def _promote_after(
        self,
        registration: Registration,
        members: SelectedMembers | None,
        processors: tuple[Processor, ...],
        interpreted: Pipeline,
    ) -> Pipeline:
        threshold = self.promotion_threshold
        calls = itertools.count(1)

        def pipeline(context: ResolutionContext) -> Any:
            if next(calls) == threshold:
                compiled, _ = self.compile(registration, members, processors)
                registration.pipeline = compiled
                logger.debug("Promoted %r to a compiled pipeline after %d calls", registration, threshold)
            return interpreted(context)

        return pipeline
