from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence


class ContainerError(RuntimeError):
    """Base class for every error raised by the container."""


class DuplicateBindingError(ContainerError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Dependency {name!r} is already registered. Use bind() to overwrite it.")


class DiscoveryError(ContainerError):
    pass


class ResolutionError(ContainerError):
    pass


class NotFoundError(ResolutionError):
    """No binding exists for a requested, or transitively required, name."""

    def __init__(self, name: str, *, required_by: str | None = None, parameter: str | None = None) -> None:
        self.name = name
        self.required_by = required_by
        self.parameter = parameter

        msg = f"Couldn't find dependency {name!r} in the container"
        if required_by is not None:
            msg += f" (required by {required_by!r} through parameter {parameter!r})"
        super().__init__(msg)


class CyclicDependencyError(ResolutionError):
    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.chain)}")


class ReflectionError(ResolutionError):
    pass
