from dicompose.pipeline.builder import PipelineBuilder
from dicompose.pipeline.processors import (
    ConstructorProcessor,
    FactoryProcessor,
    FieldProcessor,
    InstanceProcessor,
    LifetimeStep,
    MethodProcessor,
    Processor,
    PropertyProcessor,
)
from dicompose.pipeline.strategy import DEFAULT_PROMOTION_THRESHOLD, PipelineStrategy

__all__ = [
    "DEFAULT_PROMOTION_THRESHOLD",
    "ConstructorProcessor",
    "FactoryProcessor",
    "FieldProcessor",
    "InstanceProcessor",
    "LifetimeStep",
    "MethodProcessor",
    "PipelineBuilder",
    "PipelineStrategy",
    "Processor",
    "PropertyProcessor",
]
