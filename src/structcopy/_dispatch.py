# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from typing import Any
from typing import TypeVar

from structcopy import _capabilities
from structcopy._cache import FallbackCache
from structcopy._cache import Memo
from structcopy._cache import new_cache
from structcopy._capabilities import Capabilities
from structcopy._classify import Kind
from structcopy._classify import classify
from structcopy._copiers import STRATEGIES

__all__ = ["Traversal", "copy"]

T = TypeVar("T")


class Traversal:
    """
    State of one top-level :func:`copy` call.

    Calling the traversal copies a single value; copiers call it back for every
    child. The cache it owns never outlives the call that created it.
    """

    __slots__ = ("cache", "capabilities")

    def __init__(self, capabilities: Capabilities) -> None:
        self.capabilities = capabilities
        self.cache: Memo | FallbackCache = new_cache(capabilities)

    def __call__(self, value: Any) -> Any:
        kind = classify(value, self.cache)
        if kind is Kind.CACHED:
            return self.cache.get(value)
        if not kind.copyable:
            return value
        return STRATEGIES[kind](value, self)

    def memoize(self, original: Any, clone: T) -> T:
        self.cache.add(original, clone)
        return clone

    def lookup(self, original: Any, default: Any = None) -> Any:
        return self.cache.get(original, default)


def copy(value: T, *, capabilities: Capabilities | None = None) -> T:
    """
    Return a deep, structural copy of value.

    :param value: object to copy.
    :param capabilities: overrides the process-wide :data:`structcopy.CAPABILITIES`.
    :return: independent copy of `value`; exceptions, awaitables, weak
        collections and other opaque values are returned as is.
    """
    if capabilities is None:
        capabilities = _capabilities.CAPABILITIES
    elif not isinstance(capabilities, Capabilities):
        raise TypeError(
            f"argument 'capabilities' must be Capabilities, not {type(capabilities).__name__}"
        )
    return Traversal(capabilities)(value)
