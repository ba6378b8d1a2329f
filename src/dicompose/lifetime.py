"""Lifetime managers decide whether a cached instance is returned or a new one built.

Every registration owns exactly one manager. A manager exposes a single value
slot through ``get_value``/``set_value``; the variants only differ in where that
slot lives.
"""

from __future__ import annotations

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from dicompose.exceptions import (
    DIComposeBuildLockTimeoutError,
    DIComposeInvalidRegistrationError,
    DIComposePoolExhaustedError,
)

if TYPE_CHECKING:
    from dicompose.context import ResolutionContext

logger = logging.getLogger(__name__)


class _NoValue:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE: Any = _NoValue()
"""Returned by ``LifetimeManager.get_value`` when nothing has been built yet."""


def is_disposable(value: Any) -> bool:
    """Return true when the value exposes a callable ``close``."""
    return callable(getattr(value, "close", None))


def dispose_instance(value: Any) -> None:
    """Close a disposable instance; failures propagate to the caller."""
    if is_disposable(value):
        value.close()


class Lifetime(Enum):
    """Select a lifetime policy when registering without a manager instance."""

    TRANSIENT = "transient"
    """A new instance is built for every request."""

    SINGLETON = "singleton"
    """One instance for the whole container hierarchy, stored on the root."""

    CONTAINER_CONTROLLED = "container_controlled"
    """One instance owned by the registering container, visible to it and its children."""

    HIERARCHICAL = "hierarchical"
    """One instance per container that resolves it."""

    PER_THREAD = "per_thread"
    """One instance per calling thread."""

    PER_RESOLVE = "per_resolve"
    """One instance per top-level resolve call, shared inside its object graph."""

    POOLED = "pooled"
    """Instances are recycled from a bounded pool."""

    EXTERNAL = "external"
    """The container only keeps a weak reference and never disposes the instance."""


class LifetimeManager(ABC):
    """Base class for lifetime policies."""

    synchronized: ClassVar[bool] = False
    """True when the first build must be serialized through ``build_lock``."""

    requires_recovery: ClassVar[bool] = False
    """True when ``get_value`` can reserve state that ``recover`` must release."""

    def __init__(self) -> None:
        self.in_use = False

    @abstractmethod
    def get_value(self, context: ResolutionContext | None = None) -> Any:
        """Return the cached value or ``NO_VALUE``."""

    @abstractmethod
    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        """Store a freshly built value."""

    def recover(self) -> None:
        """Undo any reservation made by ``get_value`` after a failed build."""

    def dispose(self) -> None:
        """Release the held value, closing it when it is disposable."""

    def create_lifetime_policy(self) -> LifetimeManager:
        """Return a fresh manager of the same kind for a derived registration."""
        return type(self)()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class TransientLifetimeManager(LifetimeManager):
    """Never caches: every request builds a new instance."""

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        return NO_VALUE

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        return None


class _SynchronizedLifetimeManager(LifetimeManager):
    """Serializes the first build of its slot through a re-entrant ``build_lock``.

    With ``lock_timeout`` set, a build that cannot take the lock in time raises
    ``DIComposeBuildLockTimeoutError`` instead of waiting forever, which turns a
    cross-thread construction cycle into an error.
    """

    synchronized = True

    def __init__(self, *, lock_timeout: float | None = None) -> None:
        super().__init__()
        if lock_timeout is not None and lock_timeout <= 0:
            msg = f"lock_timeout must be positive, got {lock_timeout!r}."
            raise DIComposeInvalidRegistrationError(msg)
        self.lock_timeout = lock_timeout
        self.build_lock = threading.RLock()

    @contextmanager
    def building(self) -> Iterator[None]:
        """Hold ``build_lock`` while the value is built."""
        timeout = -1 if self.lock_timeout is None else self.lock_timeout
        if not self.build_lock.acquire(timeout=timeout):
            raise DIComposeBuildLockTimeoutError(self, self.lock_timeout)
        try:
            yield
        finally:
            self.build_lock.release()

    def create_lifetime_policy(self) -> LifetimeManager:
        return type(self)(lock_timeout=self.lock_timeout)


class ContainerControlledLifetimeManager(_SynchronizedLifetimeManager):
    """One value owned by the container the registration was made on.

    The registration stays in that container's store, so siblings and parents
    do not see it, and the value is closed when that container is disposed.
    """

    def __init__(self, *, lock_timeout: float | None = None) -> None:
        super().__init__(lock_timeout=lock_timeout)
        self._value: Any = NO_VALUE

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        return self._value

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        self._value = value

    def dispose(self) -> None:
        value, self._value = self._value, NO_VALUE
        if value is not NO_VALUE:
            dispose_instance(value)


class SingletonLifetimeManager(ContainerControlledLifetimeManager):
    """Singleton slot bound to the root container and shared by all descendants."""


class HierarchicalLifetimeManager(_SynchronizedLifetimeManager):
    """Keeps one value per resolving container."""

    def __init__(self, *, lock_timeout: float | None = None) -> None:
        super().__init__(lock_timeout=lock_timeout)
        self._values: weakref.WeakKeyDictionary[Any, Any] = weakref.WeakKeyDictionary()

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        if context is None:
            return NO_VALUE
        return self._values.get(context.container, NO_VALUE)

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        if context is not None:
            self._values[context.container] = value

    def release_container(self, container: Any) -> None:
        """Drop and close the value built for a container that is being disposed."""
        value = self._values.pop(container, NO_VALUE)
        if value is not NO_VALUE:
            dispose_instance(value)

    def dispose(self) -> None:
        values = list(self._values.values())
        self._values.clear()
        for value in reversed(values):
            dispose_instance(value)


class PerThreadLifetimeManager(LifetimeManager):
    """Keeps one value per calling thread."""

    def __init__(self) -> None:
        super().__init__()
        self._local = threading.local()

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        return getattr(self._local, "value", NO_VALUE)

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        self._local.value = value


class PerResolveLifetimeManager(LifetimeManager):
    """Keeps the value in the policy overlay of the current resolve call tree."""

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        if context is None:
            return NO_VALUE
        return context.policies.get(self, NO_VALUE)

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        if context is not None:
            context.policies[self] = value


class PooledLifetimeManager(LifetimeManager):
    """Recycles instances from a bounded, thread-safe pool.

    ``get_value`` checks out an idle instance. When none is idle and the pool is
    below ``capacity`` it reserves a slot and returns ``NO_VALUE`` so the caller
    builds a new instance. At capacity it waits for ``check_in`` up to
    ``timeout`` seconds (forever when ``None``).
    """

    requires_recovery = True

    def __init__(self, capacity: int = 8, *, timeout: float | None = None) -> None:
        if capacity < 1:
            msg = f"Pool capacity must be positive, got {capacity}."
            raise DIComposeInvalidRegistrationError(msg)
        super().__init__()
        self.capacity = capacity
        self.timeout = timeout
        self._idle: deque[Any] = deque()
        self._checked_out: dict[int, Any] = {}
        self._created = 0
        self._condition = threading.Condition()

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def checked_out_count(self) -> int:
        return len(self._checked_out)

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        with self._condition:
            while True:
                if self._idle:
                    value = self._idle.pop()
                    self._checked_out[id(value)] = value
                    return value
                if self._created < self.capacity:
                    self._created += 1
                    return NO_VALUE
                if not self._condition.wait(self.timeout):
                    raise DIComposePoolExhaustedError(self.capacity, self.timeout)

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        with self._condition:
            self._checked_out[id(value)] = value

    def recover(self) -> None:
        with self._condition:
            self._created -= 1
            self._condition.notify()

    def check_in(self, value: Any) -> None:
        """Return an instance to the pool, disposing it when the pool is full."""
        evicted = None
        with self._condition:
            if self._checked_out.pop(id(value), None) is None:
                if self._created < self.capacity:
                    self._created += 1
                else:
                    evicted = value
            if evicted is None:
                self._idle.append(value)
                self._condition.notify()
        if evicted is not None:
            logger.debug("Pool of %d is full, disposing checked-in %r", self.capacity, evicted)
            dispose_instance(evicted)

    def evict(self) -> None:
        """Dispose every idle instance, returning their slots to the unbuilt state."""
        with self._condition:
            idle = list(self._idle)
            self._idle.clear()
            self._created -= len(idle)
            self._condition.notify_all()
        for value in idle:
            dispose_instance(value)

    def dispose(self) -> None:
        self.evict()

    def create_lifetime_policy(self) -> LifetimeManager:
        return PooledLifetimeManager(self.capacity, timeout=self.timeout)

    def __repr__(self) -> str:
        return f"PooledLifetimeManager(capacity={self.capacity})"


class ExternallyControlledLifetimeManager(LifetimeManager):
    """Holds a back reference to an instance it does not own; never disposes it.

    Objects that cannot be weakly referenced are held strongly.
    """

    def __init__(self) -> None:
        super().__init__()
        self._reference: Any = None

    def get_value(self, context: ResolutionContext | None = None) -> Any:
        reference = self._reference
        if reference is None:
            return NO_VALUE
        if isinstance(reference, weakref.ref):
            value = reference()
            return NO_VALUE if value is None else value
        return reference

    def set_value(self, value: Any, context: ResolutionContext | None = None) -> None:
        try:
            self._reference = weakref.ref(value)
        except TypeError:
            self._reference = value


_MANAGER_TYPES: dict[Lifetime, type[LifetimeManager]] = {
    Lifetime.TRANSIENT: TransientLifetimeManager,
    Lifetime.SINGLETON: SingletonLifetimeManager,
    Lifetime.CONTAINER_CONTROLLED: ContainerControlledLifetimeManager,
    Lifetime.HIERARCHICAL: HierarchicalLifetimeManager,
    Lifetime.PER_THREAD: PerThreadLifetimeManager,
    Lifetime.PER_RESOLVE: PerResolveLifetimeManager,
    Lifetime.POOLED: PooledLifetimeManager,
    Lifetime.EXTERNAL: ExternallyControlledLifetimeManager,
}


def create_lifetime_manager(lifetime: Lifetime | LifetimeManager) -> LifetimeManager:
    """Return a manager for a ``Lifetime`` value, or the given manager unchanged."""
    if isinstance(lifetime, LifetimeManager):
        return lifetime
    try:
        return _MANAGER_TYPES[lifetime]()
    except KeyError:
        msg = f"Unsupported lifetime {lifetime!r}."
        raise DIComposeInvalidRegistrationError(msg) from None
