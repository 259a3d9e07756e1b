# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
"""
Decides, for every value met during a traversal, how it should be copied.

Each value gets exactly one :class:`Kind`. Opaque kinds are handed back by
reference; every other kind has a dedicated copier in ``_copiers``.
"""
from __future__ import annotations

import array
import datetime
import decimal
import enum
import fractions
import inspect
import io
import re
import types
import uuid
import weakref
from collections import Counter
from collections import OrderedDict
from collections import defaultdict
from collections import deque
from concurrent.futures import Future
from typing import Any
from typing import Callable
from typing import Union

from structcopy._cache import FallbackCache
from structcopy._cache import Memo

__all__ = ["ATOMIC_TYPES", "WEAK_TYPES", "Kind", "allocator", "classify", "is_object_copyable"]

Cache = Union[Memo, FallbackCache]

# Py_TPFLAGS_DISALLOW_INSTANTIATION
_DISALLOW_INSTANTIATION = 1 << 7


class Kind(enum.Enum):
    ATOMIC = "atomic"
    CACHED = "cached"
    AWAITABLE = "awaitable"
    ERROR = "error"
    WEAK = "weak"
    OPAQUE = "opaque"

    ARRAY = "array"
    TUPLE = "tuple"
    MAP = "map"
    SET = "set"
    FROZENSET = "frozenset"
    ARRAY_BUFFER = "array_buffer"
    BINARY_BUFFER = "binary_buffer"
    TYPED_ARRAY = "typed_array"
    DATA_VIEW = "data_view"
    REGEXP = "regexp"
    PLAIN_OBJECT = "plain_object"
    OBJECT = "object"

    @property
    def copyable(self) -> bool:
        return self not in _PASSTHROUGH


_PASSTHROUGH = frozenset(
    {Kind.ATOMIC, Kind.CACHED, Kind.AWAITABLE, Kind.ERROR, Kind.WEAK, Kind.OPAQUE}
)

ATOMIC_TYPES: tuple[type, ...] = (
    type(None),
    int,
    float,
    complex,
    str,
    bytes,
    range,
    slice,
    types.EllipsisType,
    types.NotImplementedType,
    type,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    types.MethodDescriptorType,
    types.CodeType,
    types.ModuleType,
    property,
    classmethod,
    staticmethod,
    decimal.Decimal,
    fractions.Fraction,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    datetime.tzinfo,
    uuid.UUID,
    enum.Enum,
)

WEAK_TYPES: tuple[type, ...] = (
    weakref.WeakKeyDictionary,
    weakref.WeakValueDictionary,
    weakref.WeakSet,
    weakref.ReferenceType,
    *weakref.ProxyTypes,
)

_NATIVE_FORMATS = frozenset("cbB?hHiIlLqQnNefdP")

# keyed by id(): a metaclass may define __eq__ without __hash__
_KIND_BY_TYPE: dict[int, Kind] = {
    id(cls): kind
    for cls, kind in [
        *((atomic, Kind.ATOMIC) for atomic in ATOMIC_TYPES),
        (bool, Kind.ATOMIC),
        (list, Kind.ARRAY),
        (deque, Kind.ARRAY),
        (tuple, Kind.TUPLE),
        (dict, Kind.MAP),
        (OrderedDict, Kind.MAP),
        (defaultdict, Kind.MAP),
        (Counter, Kind.MAP),
        (set, Kind.SET),
        (frozenset, Kind.FROZENSET),
        (bytearray, Kind.ARRAY_BUFFER),
        (io.BytesIO, Kind.BINARY_BUFFER),
        (array.array, Kind.TYPED_ARRAY),
        (memoryview, Kind.DATA_VIEW),
        (re.Pattern, Kind.REGEXP),
        (types.SimpleNamespace, Kind.PLAIN_OBJECT),
    ]
}

_ATOMIC_IDS = frozenset(map(id, ATOMIC_TYPES))
_WEAK_IDS = frozenset(map(id, WEAK_TYPES))
_ERROR_IDS = frozenset({id(BaseException)})


def _derives_from(cls: type, ids: frozenset[int]) -> bool:
    return any(id(klass) in ids for klass in cls.__mro__)


def _is_awaitable(value: Any) -> bool:
    # inspect.isawaitable, without the ABC registry lookup that hashes the class
    if isinstance(value, (types.CoroutineType, Future)):
        return True
    if isinstance(value, types.GeneratorType):
        return bool(value.gi_code.co_flags & inspect.CO_ITERABLE_COROUTINE)
    return getattr(type(value), "__await__", None) is not None


def _is_viewable(view: memoryview) -> bool:
    try:
        view_format = view.format
    except ValueError:  # released
        return False
    return view.ndim > 0 and view_format.lstrip("@") in _NATIVE_FORMATS


def allocator(cls: type) -> Callable[..., Any] | None:
    """
    Find the builtin ``__new__`` that really allocates instances of ``cls``.

    ``__new__`` overrides written in Python are skipped, the same way
    ``object.__new__`` skips them when it checks that an allocation is safe,
    so ``allocator(cls)(cls)`` never runs user code.

    :param cls: Type to inspect.
    :return: The builtin ``__new__``, or None if ``cls`` cannot be instantiated.
    """
    for klass in cls.__mro__:
        if klass.__flags__ & _DISALLOW_INSTANTIATION:
            return None
        new = vars(klass).get("__new__")
        if isinstance(new, types.BuiltinFunctionType):
            return new
    return None


def _inherited_kind(cls: type) -> Kind:
    new = allocator(cls)
    for base in cls.__mro__[1:]:
        kind = _KIND_BY_TYPE.get(id(base))
        if kind is not None:
            # a different allocator means an unknown builtin layout sits in between
            return kind if new is not None and new is base.__new__ else Kind.OPAQUE
    return Kind.OBJECT if new is object.__new__ else Kind.OPAQUE


def classify(value: Any, cache: Cache) -> Kind:
    cls = type(value)
    kind = _KIND_BY_TYPE.get(id(cls))
    if kind is Kind.ATOMIC or (kind is None and _derives_from(cls, _ATOMIC_IDS)):
        return Kind.ATOMIC
    if cache.has(value):
        return Kind.CACHED

    if kind is None:
        if _is_awaitable(value):
            return Kind.AWAITABLE
        if _derives_from(cls, _ERROR_IDS):
            return Kind.ERROR
        if _derives_from(cls, _WEAK_IDS):
            return Kind.WEAK
        kind = _inherited_kind(cls)

    if kind is Kind.DATA_VIEW:
        return kind if _is_viewable(value) else Kind.OPAQUE
    if kind is Kind.BINARY_BUFFER:
        return Kind.OPAQUE if value.closed else kind
    return kind


def is_object_copyable(value: Any, cache: Cache) -> bool:
    """
    Tell whether ``value`` should be deep-copied.

    False for atomic values, values already in ``cache``, awaitables, exceptions,
    weak collections and composites the engine has no strategy for.
    """
    return classify(value, cache).copyable
