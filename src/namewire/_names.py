from __future__ import annotations

import re
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable

    Token = str | type | Callable[..., object]


_SEPARATORS = re.compile(r"[_-]")


def normalize(raw: str) -> str:
    """Canonical form of a dependency key: lower-cased, without '_' or '-'.

    `"UserRepository"`, `"user_repository"` and `"user-repository"` all map
    to `"userrepository"`.
    """
    return _SEPARATORS.sub("", raw.lower())


def key_for(token: Token) -> str:
    """Normalized key for a string token or a named class/callable."""
    if isinstance(token, str):
        return normalize(token)

    name = getattr(token, "__name__", None)
    if not isinstance(name, str):
        msg = f"Cannot derive a dependency name from {token!r}"
        raise TypeError(msg)
    return normalize(name)
