"""Lazy package exports so that importing a subpackage does not pull in httpx or pandas eagerly."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping


def make_getattr(module_name: str, mapping: Mapping[str, str]) -> Callable[[str], object]:
    """
    Create a module-level ``__getattr__`` resolving ``name`` from ``mapping[name]``.

    Args:
        module_name: Name of the current module (for error messages).
        mapping: Export name -> dotted module path that defines it.
    """
    targets = dict(mapping)

    def __getattr__(name: str) -> object:
        target = targets.get(name)
        if target is None:
            raise AttributeError(f"module {module_name!r} has no attribute {name!r}")
        return getattr(importlib.import_module(target), name)

    return __getattr__
