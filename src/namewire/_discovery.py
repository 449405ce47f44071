from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ._errors import DiscoveryError
from ._reflection import is_protocol


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import os
    from types import ModuleType


class DiscoveryAdapter(Protocol):
    def discover(self, root_path: str | os.PathLike[str]) -> list[type]: ...


class FileSystemDiscovery:
    """Find constructible classes in the Python files below a directory.

    Files and directories whose name starts with '_' or '.' are skipped, as
    are protocols and abstract classes. A module's `__all__` selects what it
    exports; without one, every public class defined in the module counts.
    """

    module_prefix = "_namewire_discovered"

    def discover(self, root_path: str | os.PathLike[str]) -> list[type]:
        root = Path(root_path).resolve()
        if not root.is_dir():
            msg = f"Autoload directory {root} does not exist"
            raise DiscoveryError(msg)

        classes: list[type] = []
        for path in self._iter_sources(root):
            module = self._load(root, path)
            found = _exported_classes(module)
            logger.debug("Discovered %d classes in %s", len(found), path)
            classes.extend(found)

        return classes

    def _iter_sources(self, root: Path) -> list[Path]:
        return [
            path
            for path in sorted(root.rglob("*.py"))
            if not any(part.startswith(("_", ".")) for part in path.relative_to(root).parts)
        ]

    def _load(self, root: Path, path: Path) -> ModuleType:
        parts = path.relative_to(root).with_suffix("").parts
        # the path digest keeps a/b_c.py and a_b/c.py apart
        digest = hashlib.sha1(str(path).encode(), usedforsecurity=False).hexdigest()[:12]
        name = "_".join((self.module_prefix, *parts, digest))

        loaded = sys.modules.get(name)
        if loaded is not None and getattr(loaded, "__file__", None) == str(path):
            return loaded

        spec = importlib.util.spec_from_file_location(name, str(path))
        if spec is None or spec.loader is None:
            msg = f"Cannot load {path} as a Python module"
            raise DiscoveryError(msg)

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            del sys.modules[name]
            logger.error("Failed to import %s: %s", path, e)  # noqa: TRY400
            msg = f"Failed to import {path}: {e}"
            raise DiscoveryError(msg) from e

        return module


def _exported_classes(module: ModuleType) -> list[type]:
    exported = getattr(module, "__all__", None)
    if exported is None:
        candidates = [
            obj
            for name, obj in vars(module).items()
            if not name.startswith("_") and inspect.isclass(obj) and obj.__module__ == module.__name__
        ]
    else:
        candidates = [obj for name in exported if inspect.isclass(obj := getattr(module, name, None))]

    return [cls for cls in candidates if not is_protocol(cls) and not inspect.isabstract(cls)]
