"""Error kind resolution.

An error kind is an exception class. Kinds can be given directly as classes or,
in configuration files, as names: a builtin name (``TimeoutError``) or a dotted
import path (``requests.exceptions.ReadTimeout``).
"""

from __future__ import annotations

import builtins
import importlib
from typing import FrozenSet, Iterable, Type, Union

from retryop.domain.errors import ConfigurationError

ErrorKind = Union[Type[Exception], str]


def error_kind_of(error: BaseException) -> type:
    """Return the kind of an error (its exact class)."""
    return type(error)


def resolve_error_kind(kind: ErrorKind) -> Type[Exception]:
    """Resolve a class or class name into an exception class.

    Raises:
        ConfigurationError: If the name cannot be imported or is not an Exception subclass
    """
    if isinstance(kind, str):
        kind = _import_by_name(kind.strip())
    if not isinstance(kind, type) or not issubclass(kind, Exception):
        raise ConfigurationError(f"Not an exception class: {kind!r}")
    return kind


def resolve_error_kinds(kinds: Iterable[ErrorKind]) -> FrozenSet[Type[Exception]]:
    """Resolve several kinds; an empty input yields an empty set (retry on any error)."""
    return frozenset(resolve_error_kind(kind) for kind in kinds)


def _import_by_name(name: str) -> object:
    if not name:
        raise ConfigurationError("Empty error kind name")
    module_name, _, attr = name.rpartition(".")
    if not module_name:
        if hasattr(builtins, name):
            return getattr(builtins, name)
        raise ConfigurationError(f"Unknown builtin exception: {name}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import module for error kind {name}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ConfigurationError(f"Module {module_name} has no attribute {attr}") from e
