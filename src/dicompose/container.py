from __future__ import annotations

import asyncio
import functools
import logging
import threading
import weakref
from collections.abc import Callable, Collection, Iterable, Iterator, Sequence
from concurrent.futures import Executor
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar, get_args, get_origin, overload

from dicompose.autoregistration import ConcreteTypeAutoregistrationPolicy, is_runtime_class
from dicompose.context import ResolutionContext
from dicompose.diagnostics import DiagnosticsFormatter, TrailFormatter
from dicompose.exceptions import (
    DIComposeContainerDisposedError,
    DIComposeDependencyNotRegisteredError,
    DIComposeInvalidRegistrationError,
    DIComposeLifetimeManagerInUseError,
)
from dicompose.injection import InjectionMember, ResolverOverride
from dicompose.keys import NamedType
from dicompose.lifetime import (
    ContainerControlledLifetimeManager,
    ExternallyControlledLifetimeManager,
    HierarchicalLifetimeManager,
    Lifetime,
    LifetimeManager,
    PooledLifetimeManager,
    SingletonLifetimeManager,
    TransientLifetimeManager,
    create_lifetime_manager,
)
from dicompose.pipeline import DEFAULT_PROMOTION_THRESHOLD, PipelineBuilder, PipelineStrategy
from dicompose.registration import Registration, RegistrationKind, RegistrationStore
from dicompose.selection import DefaultMemberSelector, MemberSelector, type_name

if TYPE_CHECKING:
    from typing_extensions import Self

T = TypeVar("T")

logger = logging.getLogger(__name__)

_ENUMERABLE_ORIGINS = (Iterable, Sequence, Collection)


def _requesting_container(container: Container, dependency_type: Any, name: str | None) -> Any:
    return container


def _as_tuple(abstractions: Any) -> tuple[Any, ...]:
    if isinstance(abstractions, (set, frozenset, list, tuple)):
        return tuple(abstractions)
    return (abstractions,)


def _collection_request(dependency_type: Any) -> tuple[Any, Any] | None:
    """Return ``(origin, element)`` when the key asks for a collection of dependencies."""
    origin = get_origin(dependency_type)
    if origin is None:
        return None
    args = get_args(dependency_type)
    if origin is list and len(args) == 1:
        return list, args[0]
    if origin is tuple and len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
        return tuple, args[0]
    if origin in _ENUMERABLE_ORIGINS and len(args) == 1:
        return origin, args[0]
    return None


def _is_open_generic(value: Any) -> bool:
    return is_runtime_class(value) and bool(getattr(value, "__parameters__", ()))


class Container:
    """Register abstractions and resolve fully wired instances of them.

    A container owns a slice of the registration table. Child containers see
    their own registrations first and fall back to their parent's. Singleton
    registrations are always stored on the root container and their
    dependencies are resolved from the root.

    Unregistered concrete classes are registered implicitly (as transient by
    default) on first resolve, unless ``autoregister_concrete_types`` is off.
    Abstract classes, protocols, primitives and builtins always need an
    explicit registration.

    Every failure of ``resolve`` (and of ``resolve_all``, ``resolve_array``,
    ``build_up`` and ``aresolve``) is reported as
    ``DIComposeResolutionFailedError`` carrying the failure trail.
    """

    def __init__(
        self,
        *,
        strategy: PipelineStrategy = PipelineStrategy.INTERPRETED,
        promotion_threshold: int = DEFAULT_PROMOTION_THRESHOLD,
        autoregister_concrete_types: bool = True,
        default_lifetime: Lifetime = Lifetime.TRANSIENT,
        member_selector: MemberSelector | None = None,
        formatter: DiagnosticsFormatter | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Create a root container.

        Args:
            strategy: How pipelines are built. Child containers share it.
            promotion_threshold: Number of calls after which an adaptive pipeline
                is replaced by a compiled one.
            autoregister_concrete_types: Enable implicit registration of
                concrete classes on first resolve.
            default_lifetime: Lifetime of registrations that omit ``lifetime``
                and of implicit registrations.
            member_selector: Picks the constructor and members to inject.
            formatter: Renders the failure trail of a failed resolve.
            executor: Executor used by ``aresolve``; ``None`` uses the running
                loop's default executor.

        Examples:
            .. code-block:: python

                container = Container()

                strict = Container(autoregister_concrete_types=False)

                fast = Container(strategy=PipelineStrategy.COMPILED)

        """
        self._parent: Container | None = None
        self._root: Container = self
        self._store = RegistrationStore()
        self._builder = PipelineBuilder(
            member_selector=member_selector or DefaultMemberSelector(),
            strategy=strategy,
            promotion_threshold=promotion_threshold,
        )
        self._autoregister_concrete_types = autoregister_concrete_types
        self._default_lifetime = default_lifetime
        self._formatter: DiagnosticsFormatter = formatter or TrailFormatter()
        self._executor = executor
        self._autoregistration_policy = ConcreteTypeAutoregistrationPolicy()
        self._children: weakref.WeakSet[Container] = weakref.WeakSet()
        self._disposed = False
        self._dispose_lock = threading.Lock()

        self._store.register(
            Container,
            None,
            Registration(
                owner=self,
                key=NamedType(Container),
                kind=RegistrationKind.FACTORY,
                lifetime_manager=TransientLifetimeManager(),
                factory=_requesting_container,
            ),
        )

    # region Hierarchy
    @property
    def parent(self) -> Container | None:
        return self._parent

    @property
    def root(self) -> Container:
        return self._root

    @property
    def strategy(self) -> PipelineStrategy:
        return self._builder.strategy

    @property
    def formatter(self) -> DiagnosticsFormatter:
        return self._formatter

    @property
    def member_selector(self) -> MemberSelector:
        return self._builder.member_selector

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def create_child_container(self) -> Container:
        """Create a container that resolves its own registrations first, then this one's.

        The child shares this container's configuration and is disposed together
        with it.
        """
        self._ensure_not_disposed()
        child = type(self).__new__(type(self))
        child._parent = self
        child._root = self._root
        child._store = RegistrationStore(self._store)
        child._builder = self._builder
        child._autoregister_concrete_types = self._autoregister_concrete_types
        child._default_lifetime = self._default_lifetime
        child._formatter = self._formatter
        child._executor = self._executor
        child._autoregistration_policy = self._autoregistration_policy
        child._children = weakref.WeakSet()
        child._disposed = False
        child._dispose_lock = threading.Lock()
        self._children.add(child)
        return child

    # endregion Hierarchy

    # region Registration Methods
    def register_type(
        self,
        abstractions: Any,
        implementation: Any = None,
        *,
        name: str | None = None,
        lifetime: Lifetime | LifetimeManager | None = None,
        injection_members: Iterable[InjectionMember] = (),
    ) -> None:
        """Map one or more abstractions to an implementation class.

        Registering the same ``(abstraction, name)`` again replaces the previous
        registration; its lifetime manager is disposed once no abstraction
        refers to it anymore.

        Args:
            abstractions: A type, or a set/list/tuple of types, served by the
                implementation.
            implementation: Class to construct. Defaults to the abstraction
                itself when a single abstraction is given. Unsubscripted generic
                classes register an open generic mapping.
            name: Optional registration name.
            lifetime: ``Lifetime`` value or a fresh ``LifetimeManager``.
            injection_members: Explicit injection directives; they take
                precedence over markers.

        Raises:
            DIComposeInvalidRegistrationError: If the implementation is not a
                class or does not match the abstractions.
            DIComposeLifetimeManagerInUseError: If the lifetime manager already
                belongs to another registration.

        Examples:
            .. code-block:: python

                container.register_type(Repository, SqlRepository, lifetime=Lifetime.SINGLETON)
                container.register_type(
                    {Reader, Writer},
                    FileStore,
                    name="local",
                    injection_members=[InjectionProperty("root", "/var/data")],
                )

        """
        types_ = _as_tuple(abstractions)
        if not types_:
            msg = "register_type() requires at least one abstraction."
            raise DIComposeInvalidRegistrationError(msg)
        if implementation is None:
            if len(types_) != 1:
                msg = "register_type() requires an implementation when several abstractions are given."
                raise DIComposeInvalidRegistrationError(msg)
            implementation = types_[0]
        self._validate_implementation(types_, implementation)
        self._add_registration(
            types_,
            name,
            kind=RegistrationKind.TYPE,
            lifetime=lifetime,
            implementation=implementation,
            injection_members=tuple(injection_members),
        )

    def register_factory(
        self,
        abstractions: Any,
        factory: Callable[[Container, Any, str | None], Any],
        *,
        name: str | None = None,
        lifetime: Lifetime | LifetimeManager | None = None,
    ) -> None:
        """Register a callable producing instances of the abstractions.

        The factory is called as ``factory(container, dependency_type, name)``
        where ``container`` is the container performing the resolve.
        """
        if not callable(factory):
            msg = f"register_factory() expects a callable factory, got {factory!r}."
            raise DIComposeInvalidRegistrationError(msg)
        self._add_registration(
            _as_tuple(abstractions),
            name,
            kind=RegistrationKind.FACTORY,
            lifetime=lifetime,
            factory=factory,
        )

    def register_instance(
        self,
        abstractions: Any,
        instance: Any,
        *,
        name: str | None = None,
        lifetime: Lifetime | LifetimeManager | None = None,
    ) -> None:
        """Register an already built instance.

        With the default ``Lifetime.CONTAINER_CONTROLLED`` the registration
        stays on this container, which owns the instance and closes it on
        disposal. ``Lifetime.SINGLETON`` stores it on the root instead;
        ``Lifetime.EXTERNAL`` keeps only a weak reference and never closes it.
        """
        manager = create_lifetime_manager(Lifetime.CONTAINER_CONTROLLED if lifetime is None else lifetime)
        if not isinstance(manager, (ContainerControlledLifetimeManager, ExternallyControlledLifetimeManager)):
            msg = (
                f"register_instance() supports container controlled, singleton or external "
                f"lifetimes, got {manager!r}."
            )
            raise DIComposeInvalidRegistrationError(msg)
        registration = self._add_registration(
            _as_tuple(abstractions),
            name,
            kind=RegistrationKind.INSTANCE,
            lifetime=manager,
        )
        manager.set_value(instance)
        logger.debug("Stored instance %r for %r", instance, registration.key)

    def _validate_implementation(self, abstractions: tuple[Any, ...], implementation: Any) -> None:
        origin = get_origin(implementation)
        if not is_runtime_class(implementation) and not isinstance(origin, type):
            msg = f"The implementation {implementation!r} is not a class."
            raise DIComposeInvalidRegistrationError(msg)
        implementation_is_open = _is_open_generic(implementation)
        for abstraction in abstractions:
            if implementation_is_open and not _is_open_generic(abstraction):
                msg = (
                    f"Cannot map {type_name(abstraction)} to the open generic "
                    f"{type_name(implementation)}; register a parameterized implementation."
                )
                raise DIComposeInvalidRegistrationError(msg)
            base = get_origin(abstraction) or abstraction
            concrete = origin or implementation
            if not (is_runtime_class(base) and is_runtime_class(concrete)):
                continue
            try:
                compatible = issubclass(concrete, base)
            except TypeError:
                # Protocols without runtime_checkable cannot be checked.
                continue
            if not compatible:
                msg = f"{type_name(implementation)} is not a subclass of {type_name(abstraction)}."
                raise DIComposeInvalidRegistrationError(msg)

    def _add_registration(
        self,
        abstractions: tuple[Any, ...],
        name: str | None,
        *,
        kind: RegistrationKind,
        lifetime: Lifetime | LifetimeManager | None,
        implementation: Any = None,
        factory: Callable[[Any, Any, str | None], Any] | None = None,
        injection_members: tuple[InjectionMember, ...] = (),
    ) -> Registration:
        self._ensure_not_disposed()
        if not abstractions:
            msg = "At least one abstraction must be given."
            raise DIComposeInvalidRegistrationError(msg)
        if name is not None and not isinstance(name, str):
            msg = f"Registration names must be strings, got {name!r}."
            raise DIComposeInvalidRegistrationError(msg)

        manager = create_lifetime_manager(self._default_lifetime if lifetime is None else lifetime)
        if manager.in_use:
            raise DIComposeLifetimeManagerInUseError(manager)
        manager.in_use = True

        # Singletons live on the root so every descendant shares one slot.
        owner = self._root if isinstance(manager, SingletonLifetimeManager) else self
        registration = Registration(
            owner=owner,
            key=NamedType(abstractions[0], name),
            kind=kind,
            lifetime_manager=manager,
            implementation=implementation,
            factory=factory,
            injection_members=injection_members,
        )
        for abstraction in abstractions:
            previous = owner._store.register(abstraction, name, registration)
            if previous is None:
                logger.debug("Registered %r as %r", NamedType(abstraction, name), registration)
            else:
                logger.debug("Replaced %r with %r", previous, registration)
                self._release_registration(previous)
        return registration

    def _release_registration(self, registration: Registration) -> None:
        if registration.release() > 0:
            return
        specializations = registration.policies.get(RegistrationStore)
        if specializations is not None:
            for _, specialization in reversed(list(specializations)):
                specialization.lifetime_manager.dispose()
        registration.lifetime_manager.dispose()
        registration.lifetime_manager.in_use = False

    # endregion Registration Methods

    # region Queries
    def is_registered(self, dependency_type: Any, name: str | None = None) -> bool:
        """Return true when an explicit registration for the key is visible from this container."""
        registration = self._store.lookup(dependency_type, name)
        if registration is not None:
            return not registration.is_implicit
        origin = get_origin(dependency_type)
        if isinstance(origin, type):
            generic = self._store.lookup(origin, name)
            return generic is not None and generic.is_open_generic
        return False

    def can_resolve(self, dependency_type: Any, name: str | None = None) -> bool:
        """Return true when the key is registered, specializable, implicit or a collection.

        Nothing is built; a resolve can still fail while constructing the graph.
        """
        if self._store.lookup(dependency_type, name) is not None:
            return True
        if self.is_registered(dependency_type, name):
            return True
        if _collection_request(dependency_type) is not None:
            return True
        return self._autoregister_concrete_types and self._autoregistration_policy.is_eligible_concrete(
            dependency_type,
        )

    @property
    def registrations(self) -> list[Registration]:
        """Registrations visible from this container, children shadowing their parents."""
        seen: set[NamedType] = set()
        result: list[Registration] = []
        store: RegistrationStore | None = self._store
        while store is not None:
            for key, registration in store:
                if key not in seen:
                    seen.add(key)
                    result.append(registration)
            store = store.parent
        return result

    # endregion Queries

    # region Resolution
    @overload
    def resolve(
        self,
        dependency_type: type[T],
        name: str | None = None,
        *,
        overrides: Iterable[ResolverOverride] = (),
    ) -> T: ...

    @overload
    def resolve(
        self,
        dependency_type: Any,
        name: str | None = None,
        *,
        overrides: Iterable[ResolverOverride] = (),
    ) -> Any: ...

    def resolve(
        self,
        dependency_type: Any,
        name: str | None = None,
        *,
        overrides: Iterable[ResolverOverride] = (),
    ) -> Any:
        """Resolve a fully wired instance of ``dependency_type``.

        Args:
            dependency_type: The abstraction to resolve.
            name: Optional registration name.
            overrides: Values that replace normal resolution anywhere in the
                resolved object graph.

        Raises:
            DIComposeResolutionFailedError: On any failure; the original
                exception is available as ``__cause__``.

        Examples:
            .. code-block:: python

                service = container.resolve(Service)
                replica = container.resolve(Database, "replica")
                service = container.resolve(
                    Service,
                    overrides=[ParameterOverride("timeout", 5)],
                )

        """
        return self._resolve(dependency_type, name, overrides=tuple(overrides))

    async def aresolve(
        self,
        dependency_type: Any,
        name: str | None = None,
        *,
        overrides: Iterable[ResolverOverride] = (),
    ) -> Any:
        """Run ``resolve`` on the configured executor and await the result.

        Building (if needed) and executing the pipeline happen in one work item.
        Cancelling the awaiting task does not stop a resolve already running.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            functools.partial(self.resolve, dependency_type, name, overrides=tuple(overrides)),
        )

    def resolve_all(self, dependency_type: Any) -> Iterator[Any]:
        """Lazily resolve every registration of ``dependency_type`` across the hierarchy.

        Each distinct name (the default name included) is resolved once; a
        child registration shadows a parent registration of the same name.
        Open generic registrations are specialized. When nothing is registered
        but the type can be resolved, the type itself is resolved; failures of
        that fallback are reported like any other resolve failure.
        """
        context = ResolutionContext(self, Iterable[dependency_type], None)  # type: ignore[valid-type]
        try:
            self._ensure_not_disposed()
            names = self._registered_names(dependency_type)
            if not names and self.can_resolve(dependency_type):
                names = [None]
        except Exception as exc:
            context.fail(exc)
        for name in names:
            yield self.resolve(dependency_type, name)

    def resolve_array(self, dependency_type: Any) -> list[Any]:
        """Resolve every named registration of ``dependency_type`` into a list."""
        context = ResolutionContext(self, list[dependency_type], None)  # type: ignore[valid-type]
        try:
            self._ensure_not_disposed()
            return self._resolve_collection(context, list, dependency_type)
        except Exception as exc:
            context.fail(exc)

    def build_up(
        self,
        dependency_type: Any,
        existing: Any,
        name: str | None = None,
        *,
        overrides: Iterable[ResolverOverride] = (),
    ) -> Any:
        """Inject the members of ``dependency_type`` into an instance created elsewhere."""
        context = ResolutionContext(
            self,
            dependency_type,
            name,
            overrides=tuple(overrides),
            existing=existing,
        )
        try:
            self._ensure_not_disposed()
            registration = self._get_registration(dependency_type, name)
            if registration is None:
                raise DIComposeDependencyNotRegisteredError(dependency_type, name)
            if registration.kind is not RegistrationKind.TYPE:
                msg = f"build_up() needs a type registration for {registration.key!r}."
                raise DIComposeInvalidRegistrationError(msg)
            context.registration = registration
            pipeline = self._builder.get_build_up_pipeline(registration)
        except Exception as exc:
            context.fail(exc)
        return pipeline(context)

    def release(self, dependency_type: Any, instance: Any, name: str | None = None) -> None:
        """Return a pooled instance to its pool."""
        self._ensure_not_disposed()
        registration = self._get_registration(dependency_type, name)
        manager = registration.lifetime_manager if registration is not None else None
        if not isinstance(manager, PooledLifetimeManager):
            msg = f"{NamedType(dependency_type, name)!r} is not registered with a pooled lifetime."
            raise DIComposeInvalidRegistrationError(msg)
        manager.check_in(instance)

    def _resolve(
        self,
        dependency_type: Any,
        name: str | None,
        *,
        parent: ResolutionContext | None = None,
        overrides: tuple[ResolverOverride, ...] = (),
    ) -> Any:
        context = ResolutionContext(self, dependency_type, name, parent=parent, overrides=overrides)
        try:
            self._ensure_not_disposed()
            registration = self._get_registration(dependency_type, name)
            if registration is None:
                collection = _collection_request(dependency_type)
                if collection is None:
                    raise DIComposeDependencyNotRegisteredError(dependency_type, name)
                return self._resolve_collection(context, *collection)
            context.registration = registration
            if isinstance(registration.lifetime_manager, ContainerControlledLifetimeManager):
                context.container = registration.owner
            pipeline = self._builder.get_pipeline(registration)
        except Exception as exc:
            context.fail(exc)
        return pipeline(context)

    def _resolve_collection(self, context: ResolutionContext, origin: Any, element: Any) -> Any:
        if origin is list or origin is tuple:
            names: list[str | None] = [
                name for name in self._registered_names(element) if name is not None
            ]
        else:
            names = self._registered_names(element)
            if not names and self.can_resolve(element):
                names = [None]
        items = [context.resolve(element, name) for name in names]
        return tuple(items) if origin is tuple else items

    def _registered_names(self, dependency_type: Any) -> list[str | None]:
        names = [
            name
            for name, registration in self._store.iter_hierarchy(dependency_type)
            if not registration.is_implicit
        ]
        origin = get_origin(dependency_type)
        if isinstance(origin, type):
            names.extend(
                name
                for name, registration in self._store.iter_hierarchy(origin)
                if registration.is_open_generic and name not in names
            )
        return names

    def _get_registration(self, dependency_type: Any, name: str | None) -> Registration | None:
        registration = self._store.lookup(dependency_type, name)
        if registration is not None:
            return registration

        origin = get_origin(dependency_type)
        if isinstance(origin, type):
            generic = self._store.lookup(origin, name)
            if generic is not None and generic.is_open_generic:
                return self._specialize(generic, dependency_type, name)

        if self._autoregister_concrete_types and self._autoregistration_policy.is_eligible_concrete(
            dependency_type,
        ):
            root = self._root
            return root._store.get_or_create(
                dependency_type,
                name,
                lambda: self._create_implicit_registration(dependency_type, name),
            )
        return None

    def _create_implicit_registration(self, dependency_type: Any, name: str | None) -> Registration:
        manager = create_lifetime_manager(self._default_lifetime)
        manager.in_use = True
        logger.debug("Implicitly registering %r", NamedType(dependency_type, name))
        return Registration(
            owner=self._root,
            key=NamedType(dependency_type, name),
            kind=RegistrationKind.TYPE,
            lifetime_manager=manager,
            implementation=dependency_type,
            is_implicit=True,
        )

    def _specialize(self, generic: Registration, dependency_type: Any, name: str | None) -> Registration:
        specializations = generic.policies.get(RegistrationStore)
        if specializations is None:
            specializations = generic.policies.setdefault(RegistrationStore, RegistrationStore())
        return specializations.get_or_create(
            dependency_type,
            name,
            lambda: self._create_specialization(generic, dependency_type, name),
        )

    def _create_specialization(
        self,
        generic: Registration,
        dependency_type: Any,
        name: str | None,
    ) -> Registration:
        args = get_args(dependency_type)
        implementation = None
        if generic.kind is RegistrationKind.TYPE:
            parameters = getattr(generic.implementation, "__parameters__", ())
            if len(parameters) != len(args):
                msg = (
                    f"Cannot specialize {type_name(generic.implementation)} for "
                    f"{dependency_type!r}: expected {len(parameters)} type argument(s)."
                )
                raise DIComposeInvalidRegistrationError(msg)
            implementation = generic.implementation[args]
        manager = generic.lifetime_manager.create_lifetime_policy()
        manager.in_use = True
        logger.debug("Specialized open generic %r for %r", generic, dependency_type)
        return Registration(
            owner=generic.owner,
            key=NamedType(dependency_type, name),
            kind=generic.kind,
            lifetime_manager=manager,
            implementation=implementation,
            factory=generic.factory,
            injection_members=generic.injection_members,
        )

    # endregion Resolution

    # region Disposal
    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise DIComposeContainerDisposedError

    def _hierarchical_managers(self) -> Iterator[HierarchicalLifetimeManager]:
        store: RegistrationStore | None = self._store
        while store is not None:
            for _, registration in store:
                if isinstance(registration.lifetime_manager, HierarchicalLifetimeManager):
                    yield registration.lifetime_manager
                specializations = registration.policies.get(RegistrationStore)
                if specializations is None:
                    continue
                for _, specialization in specializations:
                    if isinstance(specialization.lifetime_manager, HierarchicalLifetimeManager):
                        yield specialization.lifetime_manager
            store = store.parent

    def dispose(self) -> None:
        """Dispose child containers, then the instances owned by this container.

        Disposable instances (those with a callable ``close``) held by lifetime
        managers of this container's registrations are closed in reverse
        registration order. Externally controlled instances are never closed.
        Calling ``dispose`` twice is a no-op. Failures of ``close`` propagate.
        """
        with self._dispose_lock:
            if self._disposed:
                return
            self._disposed = True

        for child in list(self._children):
            child.dispose()
        if self._parent is not None:
            self._parent._children.discard(self)

        for manager in self._hierarchical_managers():
            manager.release_container(self)

        seen: set[int] = set()
        for _, registration in reversed(list(self._store)):
            if id(registration) in seen:
                continue
            seen.add(id(registration))
            specializations = registration.policies.get(RegistrationStore)
            if specializations is not None:
                for _, specialization in reversed(list(specializations)):
                    specialization.lifetime_manager.dispose()
            registration.lifetime_manager.dispose()
        logger.debug("Disposed container %r", self)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.dispose()

    # endregion Disposal

    def __repr__(self) -> str:
        depth = 0
        container = self._parent
        while container is not None:
            depth += 1
            container = container._parent
        return f"Container(strategy={self.strategy.value}, depth={depth}, registrations={len(self._store)})"
