# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
"""
Identity caches used to remember what was already copied during one call.

Both flavours share one interface: ``add(value, copied=None)``, ``has(value)``
and ``get(value, default=None)``. A value added without ``copied`` maps to
itself.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from structcopy._capabilities import Capabilities

__all__ = ["FallbackCache", "Memo", "new_cache"]


class Memo:
    """Dict keyed by ``id()``; keeps originals alive so their ids stay unique."""

    __slots__ = ("_entries",)

    def __init__(self, values: Iterable[Any] = ()) -> None:
        self._entries: dict[int, tuple[Any, Any]] = {}
        for value in values:
            self.add(value)

    def add(self, value: Any, copied: Any = None) -> None:
        self._entries.setdefault(id(value), (value, value if copied is None else copied))

    def has(self, value: Any) -> bool:
        return id(value) in self._entries

    def get(self, value: Any, default: Any = None) -> Any:
        entry = self._entries.get(id(value))
        return default if entry is None else entry[1]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        copies = {key: copied for key, (_, copied) in self._entries.items()}
        return f"memo({copies})"


class FallbackCache:
    """
    Identity set over two parallel lists.

    Holds strong references to everything it was given and looks values up
    linearly. Only meant to live as long as a single top-level copy call.
    """

    __slots__ = ("_copies", "_values")

    def __init__(self, values: Iterable[Any] = ()) -> None:
        self._values: list[Any] = []
        self._copies: list[Any] = []
        for value in values:
            self.add(value)

    def _index(self, value: Any) -> int:
        for index, candidate in enumerate(self._values):
            if candidate is value:
                return index
        return -1

    def add(self, value: Any, copied: Any = None) -> None:
        if self._index(value) != -1:
            return
        self._values.append(value)
        self._copies.append(value if copied is None else copied)

    def has(self, value: Any) -> bool:
        return self._index(value) != -1

    def get(self, value: Any, default: Any = None) -> Any:
        index = self._index(value)
        return default if index == -1 else self._copies[index]

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"


def new_cache(capabilities: Capabilities) -> Memo | FallbackCache:
    if capabilities.native_memo:
        return Memo()
    return FallbackCache()
