from __future__ import annotations

from typing import Any


def _describe(dependency_type: Any, name: str | None) -> str:
    type_name = getattr(dependency_type, "__qualname__", None) or repr(dependency_type)
    if name is None:
        return type_name
    return f"{type_name} (name={name!r})"


class DIComposeError(Exception):
    """Represent a base class for all dicompose-specific failures.

    Catch this type when you want to handle any dicompose error path without
    matching each concrete exception class individually.
    """


class DIComposeInvalidRegistrationError(DIComposeError):
    """Signal an invalid registration or injection configuration.

    Raised directly by ``Container.register_type``, ``Container.register_factory``
    and ``Container.register_instance`` when their arguments are malformed, and
    while building a pipeline when the selected members cannot be injected
    (read-only property, ambiguous constructor, abstract implementation, ...).

    Typical fixes include registering a concrete implementation, adding a setter
    to the injected property, or passing an explicit ``InjectionConstructor``.
    """


class DIComposeLifetimeManagerInUseError(DIComposeInvalidRegistrationError):
    """Signal reuse of a lifetime manager instance by a second registration.

    A lifetime manager owns the cached value of exactly one registration. Pass a
    new manager instance (or a ``Lifetime`` value) to each registration call.
    """

    def __init__(self, manager: Any) -> None:
        self.manager = manager
        super().__init__(
            f"The lifetime manager {manager!r} is already in use by another registration. "
            "Lifetime managers cannot be shared between registrations.",
        )


class DIComposeCircularDependencyError(DIComposeError):
    """Signal a genuine cycle in the dependency graph.

    Raised while resolving when a dependency is requested again by one of its own
    dependents and no already-built value (Per-Resolve scope) can short-circuit
    the recursion.

    Typical fixes include breaking the cycle with property or method injection
    on a ``Lifetime.PER_RESOLVE`` registration, or redesigning the graph.
    """

    def __init__(self, dependency_type: Any, name: str | None) -> None:
        self.dependency_type = dependency_type
        self.name = name
        super().__init__(
            f"Circular reference detected while resolving {_describe(dependency_type, name)}.",
        )


class DIComposeDependencyNotRegisteredError(DIComposeError):
    """Signal that a dependency key has no registration and cannot be implied.

    Abstract classes, protocols, primitives and builtins must be registered
    explicitly. Concrete classes are registered implicitly unless the container
    was created with ``autoregister_concrete_types=False``.
    """

    def __init__(self, dependency_type: Any, name: str | None) -> None:
        self.dependency_type = dependency_type
        self.name = name
        super().__init__(
            f"{_describe(dependency_type, name)} is not registered and cannot be "
            "constructed implicitly.",
        )


class DIComposeContainerDisposedError(DIComposeError):
    """Signal use of a container after ``dispose`` was called."""

    def __init__(self) -> None:
        super().__init__("The container has been disposed and can no longer be used.")


class DIComposePoolExhaustedError(DIComposeError):
    """Signal that a pooled lifetime manager had no instance available in time.

    Raised when every pooled instance is checked out, the pool is at capacity and
    no instance was checked back in before the configured timeout.
    """

    def __init__(self, capacity: int, timeout: float | None) -> None:
        self.capacity = capacity
        self.timeout = timeout
        super().__init__(
            f"All {capacity} pooled instances are in use and none was returned "
            f"within {timeout} seconds.",
        )


class DIComposeBuildLockTimeoutError(DIComposeError):
    """Signal that a synchronized lifetime manager could not start its build in time.

    Raised only when the manager was created with ``lock_timeout``. Another
    thread holds the build lock of the same slot, usually because two threads
    build singletons that depend on each other and each waits for the other.
    """

    def __init__(self, manager: Any, timeout: float | None) -> None:
        self.manager = manager
        self.timeout = timeout
        super().__init__(
            f"{manager!r} could not acquire its build lock within {timeout} seconds; "
            "another thread is building the same instance.",
        )


class DIComposeResolutionFailedError(DIComposeError):
    """Signal a failed resolution, the only failure kind ``resolve`` reports.

    Wraps any internal failure (invalid registration, circular dependency,
    disposed container, missing registration) or an arbitrary exception raised
    by user constructors and factories. The original exception is available as
    ``__cause__`` and the location in the object graph as ``trail``.
    """

    def __init__(
        self,
        dependency_type: Any,
        name: str | None,
        message: str,
        trail: tuple[Any, ...] = (),
    ) -> None:
        self.dependency_type = dependency_type
        self.name = name
        self.trail = trail
        super().__init__(
            f"Resolution of the dependency failed for {_describe(dependency_type, name)}.\n"
            f"{message}",
        )
