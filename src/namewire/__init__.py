"""Name-based dependency injection container.

This package provides an inversion-of-control container that maps logical
names to constructible types and supplies constructor dependencies by
matching parameter names against registered bindings. Names are normalized,
so `"UserRepository"`, `"user_repository"` and `"user-repository"` are the
same dependency.

Exports:
- `Container`: registry and resolver (`register`, `bind`, `singleton`,
  `instance`, `bind_factory`, `get`, `has`, `autoload`).
- `ContainerOptions`: duplicate policy, default-value handling, autoload root.
- `Lifetime`: transient, singleton or pre-built instance.
- `get_container` / `reset_container`: process-wide default container.
- `normalize`: the key canonicalization used by every lookup.
- `describe`: constructor reflection used for injection.
- `FileSystemDiscovery` / `DiscoveryAdapter`: class discovery for `autoload`.
- The error hierarchy rooted at `ContainerError`.
"""

from ._container import Binding, Container, ContainerOptions, Lifetime, get_container, reset_container
from ._discovery import DiscoveryAdapter, FileSystemDiscovery
from ._errors import (
    ContainerError,
    CyclicDependencyError,
    DiscoveryError,
    DuplicateBindingError,
    NotFoundError,
    ReflectionError,
    ResolutionError,
)
from ._names import normalize
from ._reflection import ParameterDescriptor, TypeDescriptor, describe


__all__ = [
    "Binding",
    "Container",
    "ContainerError",
    "ContainerOptions",
    "CyclicDependencyError",
    "DiscoveryAdapter",
    "DiscoveryError",
    "DuplicateBindingError",
    "FileSystemDiscovery",
    "Lifetime",
    "NotFoundError",
    "ParameterDescriptor",
    "ReflectionError",
    "ResolutionError",
    "TypeDescriptor",
    "describe",
    "get_container",
    "normalize",
    "reset_container",
]
