from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    TypeVar,
    overload,
)

from ._discovery import FileSystemDiscovery
from ._errors import CyclicDependencyError, DiscoveryError, DuplicateBindingError, NotFoundError, ResolutionError
from ._names import key_for, normalize
from ._reflection import describe, validate_impl, validate_instance


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Sequence

    from ._discovery import DiscoveryAdapter
    from ._names import Token
    from ._reflection import ParameterDescriptor

    T = TypeVar("T")


class Lifetime(Enum):
    TRANSIENT = "transient"
    SINGLETON = "singleton"
    INSTANCE = "instance"


class ResolutionState(Enum):
    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


@dataclass
class Binding:
    """How the container produces a value for one normalized name."""

    name: str
    lifetime: Lifetime
    type_ref: Callable[..., object] | None = None
    dependencies: tuple[str, ...] | None = None
    closure: Callable[[], object] | None = field(default=None, repr=False)
    cached_instance: object | None = field(default=None, repr=False)
    state: ResolutionState = ResolutionState.UNVISITED

    @property
    def resolved(self) -> bool:
        return self.state is ResolutionState.RESOLVED

    def produce(self, building: list[str]) -> object:
        """Value for this binding; `building` is the stack of constructions in progress."""
        if self.lifetime is not Lifetime.TRANSIENT:
            return self.cached_instance

        if self.name in building:
            raise CyclicDependencyError([*building, self.name])

        building.append(self.name)
        try:
            return self.closure()  # type: ignore[misc]
        finally:
            building.pop()


@dataclass(frozen=True)
class ContainerOptions:
    """Container configuration.

    - strict: `register`/`singleton` refuse to replace an existing binding.
    - use_defaults: constructor parameters with a default may stay unbound.
    - autoload_dir: directory scanned by `autoload()` when no path is given.
    """

    strict: bool = True
    use_defaults: bool = True
    autoload_dir: str | os.PathLike[str] | None = None


# (dependency parameter, binding supplying it or None to use the parameter default)
Wiring = list[tuple["ParameterDescriptor", "Binding | None"]]


@dataclass
class _Step:
    binding: Binding
    wiring: Wiring


class Container:
    """Name-based DI container.

    - register/bind constructible types under normalized names
    - resolve with constructor injection by parameter name
    - lifetimes: transient / singleton / instance, plus custom factories
    - autoload types discovered on the file system.
    """

    def __init__(self, options: ContainerOptions | None = None) -> None:
        self.options = options or ContainerOptions()
        self._bindings: dict[str, Binding] = {}
        self._lock = threading.RLock()
        # names of bindings whose construction is running, outermost first
        self._building: list[str] = []

    def register(self, type_ref: Callable[..., object], *, dependencies: Sequence[str] | None = None) -> None:
        """Register a transient binding under the type's own name.

        Example:
          container.register(UserService)
          container.get("user_service")

        """
        self._add_constructible(type_ref, Lifetime.TRANSIENT, dependencies)

    def singleton(self, type_ref: Callable[..., object], *, dependencies: Sequence[str] | None = None) -> None:
        """Register a binding constructed once, on first resolution."""
        self._add_constructible(type_ref, Lifetime.SINGLETON, dependencies)

    def bind(
        self,
        name: Token,
        type_ref: Callable[..., object],
        *,
        dependencies: Sequence[str] | None = None,
    ) -> None:
        """Bind a contract name to a concrete type, replacing any existing binding.

        Example:
          container.bind("UserRepository", SqlUserRepository)
          container.bind(UserRepository, SqlUserRepository)

        """
        if inspect.isclass(name):
            validate_impl(name, type_ref)

        binding = Binding(key_for(name), Lifetime.TRANSIENT, type_ref=type_ref, dependencies=_as_tuple(dependencies))
        with self._lock:
            self._put(binding)

    def instance(self, token: Token, value: object) -> None:
        """Bind a pre-built value. The container never constructs it."""
        if inspect.isclass(token):
            validate_instance(token, value)

        binding = Binding(
            key_for(token),
            Lifetime.INSTANCE,
            cached_instance=value,
            state=ResolutionState.RESOLVED,
        )
        with self._lock:
            self._put(binding)

    def bind_factory(self, name: Token, factory: Callable[[Container], object]) -> None:
        """Bind a factory called with this container on every `get`.

        No constructor reflection happens for factory bindings.
        """
        binding = Binding(
            key_for(name),
            Lifetime.TRANSIENT,
            closure=functools.partial(factory, self),
            state=ResolutionState.RESOLVED,
        )
        with self._lock:
            self._put(binding)

    def has(self, token: Token) -> bool:
        try:
            key = key_for(token)
        except TypeError:
            return False

        with self._lock:
            return key in self._bindings

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._bindings)

    @overload
    def get(self, token: type[T]) -> T: ...

    @overload
    def get(self, token: str) -> Any: ...

    def get(self, token: Token) -> object:
        """Resolve the token to a value.

        - Transient bindings build a new value on every call.
        - Singleton and instance bindings return their cached value.
        """
        key = key_for(token)

        with self._lock:
            binding = self._bindings.get(key)
            if binding is None:
                raise NotFoundError(key)

            if binding.state is ResolutionState.IN_PROGRESS:
                raise CyclicDependencyError([*self._building, key])

            if not binding.resolved:
                self._resolve(binding)

            return binding.produce(self._building)

    async def autoload(
        self,
        root_path: str | os.PathLike[str] | None = None,
        *,
        discoverer: DiscoveryAdapter | None = None,
    ) -> list[str]:
        """Register every type discovered under `root_path` that is not bound yet.

        Returns the names registered by this call.
        """
        root = root_path if root_path is not None else self.options.autoload_dir
        if root is None:
            msg = "No autoload directory given and ContainerOptions.autoload_dir is not set"
            raise DiscoveryError(msg)

        discoverer = discoverer or FileSystemDiscovery()
        discovered = await asyncio.to_thread(discoverer.discover, root)

        registered: list[str] = []
        with self._lock:
            for type_ref in discovered:
                key = key_for(type_ref)
                if key in self._bindings:
                    logger.debug("Skipping discovered %s: %r is already bound", type_ref.__qualname__, key)
                    continue
                self.register(type_ref)
                registered.append(key)

        logger.debug("Autoloaded %d of %d discovered types from %s", len(registered), len(discovered), root)
        return registered

    def _add_constructible(
        self,
        type_ref: Callable[..., object],
        lifetime: Lifetime,
        dependencies: Sequence[str] | None,
    ) -> None:
        binding = Binding(key_for(type_ref), lifetime, type_ref=type_ref, dependencies=_as_tuple(dependencies))

        with self._lock:
            if self.options.strict and binding.name in self._bindings:
                raise DuplicateBindingError(binding.name)
            self._put(binding)

    def _put(self, binding: Binding) -> None:
        if binding.name in self._bindings:
            logger.debug("Overwriting binding %r with %s", binding.name, binding.lifetime.value)
        else:
            logger.debug("Binding %r as %s", binding.name, binding.lifetime.value)
        self._bindings[binding.name] = binding

    def _resolve(self, binding: Binding) -> None:
        """Resolve `binding` and its unresolved dependencies.

        Planning walks the graph first so that a missing or cyclic dependency
        fails before anything is constructed.
        """
        path: list[Binding] = []
        plan: list[_Step] = []

        try:
            self._plan(binding, path, set(), plan)
        except ResolutionError:
            for pending in path:
                pending.state = ResolutionState.UNVISITED
            raise

        try:
            for step in plan:
                self._materialize(step)
        finally:
            for step in plan:
                if step.binding.state is ResolutionState.IN_PROGRESS:
                    step.binding.state = ResolutionState.UNVISITED

    def _plan(self, binding: Binding, path: list[Binding], planned: set[str], plan: list[_Step]) -> None:
        binding.state = ResolutionState.IN_PROGRESS
        path.append(binding)

        descriptor = describe(binding.type_ref, binding.dependencies)  # type: ignore[arg-type]
        wiring: Wiring = []

        for param in descriptor.parameters:
            dep_key = normalize(param.name)
            dep = self._bindings.get(dep_key)

            if dep is None:
                if param.has_default and self.options.use_defaults:
                    wiring.append((param, None))
                    continue
                raise NotFoundError(dep_key, required_by=binding.name, parameter=param.name)

            if dep.state is ResolutionState.IN_PROGRESS:
                raise CyclicDependencyError([b.name for b in path] + [dep.name])

            if not dep.resolved and dep.name not in planned:
                self._plan(dep, path, planned, plan)

            wiring.append((param, dep))

        path.pop()
        binding.state = ResolutionState.UNVISITED
        planned.add(binding.name)
        plan.append(_Step(binding, wiring))

    def _materialize(self, step: _Step) -> None:
        binding = step.binding
        if binding.resolved:
            # a factory of an earlier step already requested it
            return

        closure = _construction_closure(binding.type_ref, step.wiring, self._building)  # type: ignore[arg-type]

        if binding.lifetime is Lifetime.SINGLETON:
            # a factory asking for this binding while it is built is a cycle
            binding.state = ResolutionState.IN_PROGRESS
            self._building.append(binding.name)
            try:
                binding.cached_instance = closure()
            finally:
                self._building.pop()

        binding.closure = closure
        binding.state = ResolutionState.RESOLVED
        logger.debug("Resolved %r (%s)", binding.name, binding.lifetime.value)


def _construction_closure(
    type_ref: Callable[..., object],
    wiring: Wiring,
    building: list[str],
) -> Callable[[], object]:
    def construct() -> object:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for param, dep in wiring:
            if dep is None:
                # positional-only defaults must still occupy their slot
                if param.positional:
                    args.append(param.default)
                continue

            value = dep.produce(building)
            if param.positional:
                args.append(value)
            else:
                kwargs[param.name] = value

        return type_ref(*args, **kwargs)

    return construct


def _as_tuple(dependencies: Sequence[str] | None) -> tuple[str, ...] | None:
    if dependencies is None:
        return None
    if isinstance(dependencies, str):
        msg = "dependencies must be a sequence of names, not a string"
        raise TypeError(msg)
    return tuple(dependencies)


_default_container: Container | None = None
_default_lock = threading.Lock()


def get_container() -> Container:
    """Process-wide container, created on first use."""
    global _default_container  # noqa: PLW0603

    with _default_lock:
        if _default_container is None:
            _default_container = Container()
        return _default_container


def reset_container() -> None:
    """Discard the process-wide container; the next `get_container()` starts empty."""
    global _default_container  # noqa: PLW0603

    with _default_lock:
        _default_container = None
