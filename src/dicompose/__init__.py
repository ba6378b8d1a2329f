from dicompose.container import Container
from dicompose.context import ResolutionContext
from dicompose.diagnostics import DiagnosticsFormatter, TrailFormatter
from dicompose.exceptions import (
    DIComposeBuildLockTimeoutError,
    DIComposeCircularDependencyError,
    DIComposeContainerDisposedError,
    DIComposeDependencyNotRegisteredError,
    DIComposeError,
    DIComposeInvalidRegistrationError,
    DIComposeLifetimeManagerInUseError,
    DIComposePoolExhaustedError,
    DIComposeResolutionFailedError,
)
from dicompose.injection import (
    DependencyOverride,
    FieldOverride,
    InjectionConstructor,
    InjectionField,
    InjectionMethod,
    InjectionProperty,
    OptionalParameter,
    ParameterOverride,
    PropertyOverride,
    ResolvedParameter,
)
from dicompose.keys import NamedType
from dicompose.lifetime import (
    NO_VALUE,
    ContainerControlledLifetimeManager,
    ExternallyControlledLifetimeManager,
    HierarchicalLifetimeManager,
    Lifetime,
    LifetimeManager,
    PerResolveLifetimeManager,
    PerThreadLifetimeManager,
    PooledLifetimeManager,
    SingletonLifetimeManager,
    TransientLifetimeManager,
)
from dicompose.markers import Dependency, OptionalDependency, injection_constructor, injection_method
from dicompose.pipeline import PipelineStrategy
from dicompose.selection import DefaultMemberSelector, MemberSelector, SelectedMembers

__all__ = [
    "NO_VALUE",
    "Container",
    "ContainerControlledLifetimeManager",
    "DIComposeBuildLockTimeoutError",
    "DIComposeCircularDependencyError",
    "DIComposeContainerDisposedError",
    "DIComposeDependencyNotRegisteredError",
    "DIComposeError",
    "DIComposeInvalidRegistrationError",
    "DIComposeLifetimeManagerInUseError",
    "DIComposePoolExhaustedError",
    "DIComposeResolutionFailedError",
    "DefaultMemberSelector",
    "Dependency",
    "DependencyOverride",
    "DiagnosticsFormatter",
    "ExternallyControlledLifetimeManager",
    "FieldOverride",
    "HierarchicalLifetimeManager",
    "InjectionConstructor",
    "InjectionField",
    "InjectionMethod",
    "InjectionProperty",
    "Lifetime",
    "LifetimeManager",
    "MemberSelector",
    "NamedType",
    "OptionalDependency",
    "OptionalParameter",
    "ParameterOverride",
    "PerResolveLifetimeManager",
    "PerThreadLifetimeManager",
    "PipelineStrategy",
    "PooledLifetimeManager",
    "PropertyOverride",
    "ResolutionContext",
    "ResolvedParameter",
    "SelectedMembers",
    "SingletonLifetimeManager",
    "TrailFormatter",
    "TransientLifetimeManager",
    "injection_constructor",
    "injection_method",
]
