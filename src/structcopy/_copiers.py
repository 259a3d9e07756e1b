# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
"""
One copy strategy per copyable :class:`~structcopy._classify.Kind`.

Every strategy receives the original value and ``copy``, the traversal that is
re-entered for each child. Mutable containers are registered through
``copy.memoize`` before any child is copied, so a child pointing back at its
container gets the clone instead of recursing forever.
"""
from __future__ import annotations

import array
import io
import re
import types
from collections import defaultdict
from collections import deque
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING
from typing import Any

from structcopy._classify import Kind
from structcopy._classify import allocator

if TYPE_CHECKING:
    from structcopy._dispatch import Traversal

__all__ = [
    "STRATEGIES",
    "copy_array",
    "copy_array_buffer",
    "copy_binary_buffer",
    "copy_data_view",
    "copy_frozenset",
    "copy_instance_state",
    "copy_iterable",
    "copy_object",
    "copy_pattern",
    "copy_tuple",
    "copy_typed_array",
    "get_pattern_flags",
    "slot_names",
]

# canonical order; UNICODE is implied for str patterns and never reported
PATTERN_FLAGS: tuple[tuple[str, re.RegexFlag], ...] = (
    ("i", re.IGNORECASE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
    ("x", re.VERBOSE),
    ("a", re.ASCII),
    ("L", re.LOCALE),
)
_FLAG_BY_LETTER = dict(PATTERN_FLAGS)


def get_pattern_flags(pattern: re.Pattern) -> str:
    """
    Spell out the flags of a compiled pattern.

    :param pattern: compiled regular expression.
    :return: one letter per set flag, in ``imsxaL`` order; empty when none is set.
    """
    return "".join(letter for letter, flag in PATTERN_FLAGS if pattern.flags & flag)


def slot_names(cls: type) -> list[str]:
    """Names of every ``__slots__`` entry along the MRO, mangled like attribute access sees them."""
    names = []
    for klass in cls.__mro__:
        slots = vars(klass).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            if name.startswith("__") and not name.endswith("__"):
                stripped = klass.__name__.lstrip("_")
                if stripped:
                    name = f"_{stripped}{name}"
            names.append(name)
    return names


def copy_instance_state(original: Any, clone: Any, copy: Traversal) -> None:
    """Copy ``__dict__`` entries and, when slots can be introspected, set slot values."""
    state = getattr(original, "__dict__", None)
    if state:
        target = clone.__dict__
        for name, attr in state.items():
            target[name] = copy(attr)

    if not copy.capabilities.slot_introspection:
        return
    for name in slot_names(type(original)):
        try:
            attr = object.__getattribute__(original, name)
        except AttributeError:
            # unset slot
            continue
        object.__setattr__(clone, name, copy(attr))


def _empty_like(value: Any) -> Any:
    cls = type(value)
    clone = allocator(cls)(cls)
    if isinstance(value, deque):
        deque.__init__(clone, (), value.maxlen)
    elif isinstance(value, defaultdict):
        clone.default_factory = value.default_factory
    return clone


def copy_array(sequence: list | deque, copy: Traversal) -> list | deque:
    clone = copy.memoize(sequence, _empty_like(sequence))
    append = clone.append
    for item in sequence:
        append(copy(item))
    copy_instance_state(sequence, clone, copy)
    return clone


def copy_iterable(iterable: dict | set, copy: Traversal, is_map: bool) -> dict | set:
    """
    Copy a keyed (``is_map``) or plain collection into an empty one of the same type.

    Keys are deep-copied as well as values, so they must stay hashable once copied.
    """
    clone = copy.memoize(iterable, _empty_like(iterable))
    if is_map:
        for key, value in iterable.items():
            clone[copy(key)] = copy(value)
    else:
        add = clone.add
        for item in iterable:
            add(copy(item))
    copy_instance_state(iterable, clone, copy)
    return clone


def _copy_immutable(value: Any, copy: Traversal, base: type) -> Any:
    items = [copy(item) for item in value]
    # a cycle through a mutable child already produced the clone
    cycled = copy.lookup(value)
    if cycled is not None:
        return cycled

    cls = type(value)
    if cls is base:
        if all(item is original for item, original in zip(items, value)):
            return copy.memoize(value, value)
        return copy.memoize(value, base(items))

    # subclasses may carry mutable attributes, so they are always rebuilt
    clone = copy.memoize(value, base.__new__(cls, items))
    copy_instance_state(value, clone, copy)
    return clone


def copy_tuple(value: tuple, copy: Traversal) -> tuple:
    return _copy_immutable(value, copy, tuple)


def copy_frozenset(value: frozenset, copy: Traversal) -> frozenset:
    return _copy_immutable(value, copy, frozenset)


def copy_array_buffer(buffer: bytearray, copy: Traversal) -> bytearray:
    cls = type(buffer)
    if cls is bytearray:
        return copy.memoize(buffer, bytearray(buffer))
    clone = copy.memoize(buffer, bytearray.__new__(cls))
    bytearray.__init__(clone, buffer)
    copy_instance_state(buffer, clone, copy)
    return clone


def copy_binary_buffer(stream: io.BytesIO, copy: Traversal) -> io.BytesIO:
    clone = io.BytesIO.__new__(type(stream))
    with stream.getbuffer() as view:
        io.BytesIO.__init__(clone, view)
    clone.seek(stream.tell())
    copy.memoize(stream, clone)
    copy_instance_state(stream, clone, copy)
    return clone


def copy_typed_array(values: array.array, copy: Traversal) -> array.array:
    clone = array.array.__new__(type(values), values.typecode, values)
    copy.memoize(values, clone)
    copy_instance_state(values, clone, copy)
    return clone


def _spans_exporter(view: memoryview, exporter: Any) -> bool:
    with memoryview(exporter) as whole:
        return (
            view.c_contiguous
            and whole.nbytes == view.nbytes
            and whole.format == view.format
            and whole.shape == view.shape
        )


def copy_data_view(view: memoryview, copy: Traversal) -> memoryview:
    """
    Copy a view together with the memory behind it.

    A view over a whole exporter is rebuilt over the copied exporter, so other
    references to that exporter within the same call share the new memory.
    Any other view gets a private copy of the bytes it shows.
    """
    exporter = view.obj
    clone = None
    if _spans_exporter(view, exporter):
        copied = copy(exporter)
        if copied is not exporter or isinstance(exporter, bytes):
            clone = memoryview(copied)

    if clone is None:
        data = view.tobytes()
        clone = memoryview(data if view.readonly else bytearray(data))
        view_format = view.format.lstrip("@")
        if view_format != "B" or view.ndim != 1:
            clone = clone.cast(view_format, view.shape)

    if view.readonly and not clone.readonly:
        clone = clone.toreadonly()
    return copy.memoize(view, clone)


def copy_pattern(pattern: re.Pattern, copy: Traversal) -> re.Pattern:
    """
    Recompile ``pattern`` from its source and flags.

    Compiled patterns are immutable and ``re`` caches them, so the result may be
    the very object passed in.
    """
    flags = 0
    for letter in get_pattern_flags(pattern):
        flags |= _FLAG_BY_LETTER[letter]
    return copy.memoize(pattern, re.compile(pattern.pattern, flags))


def copy_object(value: Any, copy: Traversal, is_plain: bool) -> Any:
    """
    Copy an instance without running its constructor or any ``__new__`` override.

    Namespaces are allocated through :class:`types.SimpleNamespace`, everything
    else through ``object.__new__``. Either way the exact type is kept.
    """
    base = types.SimpleNamespace if is_plain else object
    clone = base.__new__(type(value))
    copy.memoize(value, clone)
    copy_instance_state(value, clone, copy)
    return clone


STRATEGIES: dict[Kind, Callable[[Any, Traversal], Any]] = {
    Kind.ARRAY: copy_array,
    Kind.TUPLE: copy_tuple,
    Kind.MAP: partial(copy_iterable, is_map=True),
    Kind.SET: partial(copy_iterable, is_map=False),
    Kind.FROZENSET: copy_frozenset,
    Kind.ARRAY_BUFFER: copy_array_buffer,
    Kind.BINARY_BUFFER: copy_binary_buffer,
    Kind.TYPED_ARRAY: copy_typed_array,
    Kind.DATA_VIEW: copy_data_view,
    Kind.REGEXP: copy_pattern,
    Kind.PLAIN_OBJECT: partial(copy_object, is_plain=True),
    Kind.OBJECT: partial(copy_object, is_plain=False),
}
