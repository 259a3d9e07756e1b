# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
"""Environment capabilities consumed by the copy engine."""
from __future__ import annotations

import logging
import os
import warnings
from collections.abc import Mapping
from dataclasses import dataclass

__all__ = ["CAPABILITIES", "Capabilities"]

logger = logging.getLogger("structcopy")

FALLBACK_MEMO_VAR = "STRUCTCOPY_FALLBACK_MEMO"
NO_SLOTS_VAR = "STRUCTCOPY_NO_SLOTS"


def _flag(environ: Mapping[str, str], name: str) -> bool:
    raw = environ.get(name)
    if raw in (None, "", "0"):
        return False
    if raw == "1":
        return True
    warnings.warn(
        f"Ignoring {name}={raw!r}: expected '0' or '1'.",
        UserWarning,
        stacklevel=3,
    )
    return False


@dataclass(frozen=True)
class Capabilities:
    """
    What the current environment lets the engine rely on.

    :param native_memo: use the dict-backed identity memo. When false, the
        list-backed fallback cache is used instead.
    :param slot_introspection: copy values stored in ``__slots__``. When false,
        slot values are skipped entirely.
    """

    native_memo: bool = True
    slot_introspection: bool = True

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> Capabilities:
        if environ is None:
            environ = os.environ
        capabilities = cls(
            native_memo=not _flag(environ, FALLBACK_MEMO_VAR),
            slot_introspection=not _flag(environ, NO_SLOTS_VAR),
        )
        logger.debug("Resolved %r", capabilities)
        return capabilities


# resolved once per process; pass another Capabilities to copy() to override
CAPABILITIES = Capabilities.from_environ()
