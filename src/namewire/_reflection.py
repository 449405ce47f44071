from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, cast

from ._errors import ReflectionError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def positional(self) -> bool:
        return self.kind is inspect.Parameter.POSITIONAL_ONLY


@dataclass(frozen=True)
class TypeDescriptor:
    """Declared name of a constructible type and its ordered constructor parameters."""

    name: str
    parameters: tuple[ParameterDescriptor, ...] = ()


def describe(type_ref: Callable[..., object], dependencies: Sequence[str] | None = None) -> TypeDescriptor:
    """Describe `type_ref` for constructor injection.

    Parameter names come from, in order of preference:
    1. the explicit `dependencies` sequence
    2. an `__inject__` sequence declared on the type
    3. the constructor signature (without self, *args and **kwargs).

    Explicit names are always passed positionally.
    """
    name = getattr(type_ref, "__name__", None)
    if not isinstance(name, str):
        msg = f"{type_ref!r} has no __name__ and cannot be described"
        raise ReflectionError(msg)

    if dependencies is None:
        dependencies = getattr(type_ref, "__inject__", None)

    if dependencies is not None:
        if isinstance(dependencies, str):
            msg = f"Dependencies of {name} must be a sequence of names, not a string"
            raise ReflectionError(msg)
        params = tuple(ParameterDescriptor(dep, inspect.Parameter.POSITIONAL_ONLY) for dep in dependencies)
        return TypeDescriptor(name, params)

    return TypeDescriptor(name, _constructor_parameters(type_ref, name))


def _constructor_parameters(type_ref: Callable[..., object], name: str) -> tuple[ParameterDescriptor, ...]:
    if inspect.isclass(type_ref) and not _defines_constructor(type_ref):
        return ()

    try:
        sig = inspect.signature(type_ref)
    except (TypeError, ValueError) as e:
        msg = f"Cannot inspect the constructor of {name}: {e}"
        raise ReflectionError(msg) from e

    return tuple(
        ParameterDescriptor(p.name, p.kind, p.default) for p in sig.parameters.values() if p.kind not in _VARIADIC
    )


def _defines_constructor(cls: type) -> bool:
    return any("__init__" in klass.__dict__ or "__new__" in klass.__dict__ for klass in cls.__mro__[:-1])


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: object) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return inspect.isclass(tp) and getattr(tp, "_is_protocol", False) and issubclass(tp, cast("type", Protocol))


def validate_impl(contract: type, impl: object) -> None:
    """Validate that 'impl' implements 'contract'.

    - For normal classes/ABCs: require issubclass(impl, contract).
    - For Protocols: nominal via MRO, otherwise every public member must exist on impl.

    Non-class implementations (plain factories) cannot be validated statically.
    """
    if not inspect.isclass(impl):
        return

    if not is_protocol(contract):
        if not issubclass(impl, contract):
            msg = f"Implementation {impl.__name__} must be a subclass of {contract.__name__}"
            raise TypeError(msg)
        return

    if contract in impl.__mro__:
        return

    missing = [member for member in _protocol_members(contract) if not hasattr(impl, member)]
    if missing:
        msg = (
            f"Implementation {impl.__name__} does not structurally conform to protocol "
            f"{contract.__name__}: missing members: {', '.join(missing)}"
        )
        raise TypeError(msg)


def validate_instance(contract: type, value: object) -> None:
    if is_protocol(contract):
        validate_impl(contract, type(value))
    elif not isinstance(value, contract):
        msg = f"Instance {type(value).__name__} is not an instance of {contract.__name__}"
        raise TypeError(msg)


def _protocol_members(proto_cls: type) -> list[str]:
    try:
        hints = typing.get_type_hints(proto_cls)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, proto_cls.__qualname__)
        hints = {}

    members = [name for name in hints if not name.startswith("_")]
    members.extend(
        name
        for name, attr in proto_cls.__dict__.items()
        if not name.startswith("_") and inspect.isfunction(attr) and name not in members
    )
    return members
