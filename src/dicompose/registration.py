from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any

from dicompose.injection import InjectionMember
from dicompose.keys import NamedType
from dicompose.lifetime import LifetimeManager

if TYPE_CHECKING:
    from dicompose.container import Container

Pipeline = Callable[[Any], Any]
"""A callable taking a ``ResolutionContext`` and returning the built instance."""


class RegistrationKind(Enum):
    """How a registration produces its instance."""

    TYPE = "type"
    """Construct ``implementation`` and inject its members."""

    FACTORY = "factory"
    """Call ``factory(container, type, name)``."""

    INSTANCE = "instance"
    """Return the instance held by the lifetime manager."""


class Registration:
    """A stored binding of an abstraction to a construction recipe and a lifetime.

    One registration may be stored under several abstractions; it counts the
    store slots pointing at it so the lifetime manager is disposed only when the
    last slot is replaced.
    """

    def __init__(
        self,
        *,
        owner: Container,
        key: NamedType,
        kind: RegistrationKind,
        lifetime_manager: LifetimeManager,
        implementation: Any = None,
        factory: Callable[[Any, Any, str | None], Any] | None = None,
        injection_members: tuple[InjectionMember, ...] = (),
        is_implicit: bool = False,
    ) -> None:
        self.owner = owner
        self.key = key
        self.kind = kind
        self.lifetime_manager = lifetime_manager
        self.implementation = implementation
        self.factory = factory
        self.injection_members = injection_members
        self.is_implicit = is_implicit
        self.policies: dict[Any, Any] = {}
        self.pipeline: Pipeline | None = None
        self.build_up_pipeline: Pipeline | None = None
        self.build_lock = threading.Lock()
        self._ref_count = 0
        self._ref_lock = threading.Lock()

    @property
    def name(self) -> str | None:
        return self.key.name

    @property
    def is_open_generic(self) -> bool:
        """True when the registration must be specialized before it can be built.

        Type registrations are open when the implementation is an unsubscripted
        generic class; factory registrations when the abstraction is.
        """
        if self.kind is RegistrationKind.INSTANCE:
            return False
        target = self.implementation if self.kind is RegistrationKind.TYPE else self.key.type
        return isinstance(target, type) and bool(getattr(target, "__parameters__", ()))

    @property
    def ref_count(self) -> int:
        return self._ref_count

    def add_ref(self) -> None:
        with self._ref_lock:
            self._ref_count += 1

    def release(self) -> int:
        """Drop one store slot reference and return how many remain."""
        with self._ref_lock:
            self._ref_count -= 1
            return self._ref_count

    def __repr__(self) -> str:
        target = self.implementation if self.kind is RegistrationKind.TYPE else self.kind.value
        return f"Registration({self.key!r} -> {target!r}, {self.lifetime_manager!r})"


class RegistrationStore:
    """One container's slice of the registration table.

    Writers serialize on a lock and publish a new snapshot (copy-on-write), so
    readers never lock and always see a consistent table. Lookups that miss
    continue in the parent container's store.
    """

    def __init__(self, parent: RegistrationStore | None = None) -> None:
        self._parent = parent
        self._entries: dict[Any, dict[str | None, Registration]] = {}
        self._write_lock = threading.Lock()

    @property
    def parent(self) -> RegistrationStore | None:
        return self._parent

    def register(
        self,
        dependency_type: Any,
        name: str | None,
        registration: Registration,
    ) -> Registration | None:
        """Store the registration in the slot, returning the displaced one."""
        with self._write_lock:
            return self._swap(dependency_type, name, registration)

    def find(self, dependency_type: Any, name: str | None) -> Registration | None:
        """Look the slot up in this slice only."""
        named = self._entries.get(dependency_type)
        if named is None:
            return None
        return named.get(name)

    def lookup(self, dependency_type: Any, name: str | None) -> Registration | None:
        """Look the slot up in this slice, then in the parent slices."""
        store: RegistrationStore | None = self
        while store is not None:
            registration = store.find(dependency_type, name)
            if registration is not None:
                return registration
            store = store._parent
        return None

    def get_or_create(
        self,
        dependency_type: Any,
        name: str | None,
        factory: Callable[[], Registration],
    ) -> Registration:
        """Return the local registration for the slot, realizing it once if missing."""
        registration = self.find(dependency_type, name)
        if registration is not None:
            return registration
        with self._write_lock:
            registration = self.find(dependency_type, name)
            if registration is None:
                registration = factory()
                self._swap(dependency_type, name, registration)
            return registration

    def is_registered(self, dependency_type: Any, name: str | None = None) -> bool:
        return self.lookup(dependency_type, name) is not None

    def items(self, dependency_type: Any) -> list[tuple[str | None, Registration]]:
        """Return this slice's ``(name, registration)`` pairs in registration order."""
        return list(self._entries.get(dependency_type, {}).items())

    def iter_hierarchy(self, dependency_type: Any) -> Iterator[tuple[str | None, Registration]]:
        """Yield pairs across the hierarchy, skipping names shadowed by a child."""
        seen: set[str | None] = set()
        store: RegistrationStore | None = self
        while store is not None:
            for name, registration in store.items(dependency_type):
                if name not in seen:
                    seen.add(name)
                    yield name, registration
            store = store._parent

    def __iter__(self) -> Iterator[tuple[NamedType, Registration]]:
        entries = self._entries
        return (
            (NamedType(dependency_type, name), registration)
            for dependency_type, named in entries.items()
            for name, registration in named.items()
        )

    def __len__(self) -> int:
        return sum(len(named) for named in self._entries.values())

    def _swap(
        self,
        dependency_type: Any,
        name: str | None,
        registration: Registration,
    ) -> Registration | None:
        entries = dict(self._entries)
        named = dict(entries.get(dependency_type, {}))
        previous = named.get(name)
        named[name] = registration
        entries[dependency_type] = named
        registration.add_ref()
        self._entries = entries
        return previous
