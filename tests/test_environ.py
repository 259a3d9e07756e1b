# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
import logging
import os
import subprocess
import sys
import textwrap
import warnings

import pytest

import structcopy
from structcopy import Capabilities


def env(**kwargs):
    base = {
        "STRUCTCOPY_FALLBACK_MEMO": None,
        "STRUCTCOPY_NO_SLOTS": None,
    }
    base.update(kwargs)
    return {key: value for key, value in base.items() if value is not None}


def run_in_subprocess(source, environ):
    """Run ``source`` in a fresh interpreter so import-time resolution sees ``environ``."""
    child_env = {
        key: value for key, value in os.environ.items() if not key.startswith("STRUCTCOPY_")
    }
    child_env.update(environ)
    result = subprocess.run(
        [sys.executable, "-c", textwrap.dedent(source)],
        env=child_env,
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0, result.stderr
    return result.stdout.strip()


def test_defaults_without_variables():
    assert Capabilities.from_environ(env()) == Capabilities(
        native_memo=True, slot_introspection=True
    )


@pytest.mark.parametrize(
    "environ,expected",
    [
        (env(STRUCTCOPY_FALLBACK_MEMO="1"), Capabilities(native_memo=False)),
        (env(STRUCTCOPY_FALLBACK_MEMO="0"), Capabilities()),
        (env(STRUCTCOPY_FALLBACK_MEMO=""), Capabilities()),
        (env(STRUCTCOPY_NO_SLOTS="1"), Capabilities(slot_introspection=False)),
        (
            env(STRUCTCOPY_FALLBACK_MEMO="1", STRUCTCOPY_NO_SLOTS="1"),
            Capabilities(native_memo=False, slot_introspection=False),
        ),
    ],
)
def test_from_environ(environ, expected):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert Capabilities.from_environ(environ) == expected


@pytest.mark.parametrize("raw", ["yes", "true", "2", " 1"])
def test_invalid_value_warns_and_keeps_default(raw):
    with pytest.warns(UserWarning, match="Ignoring STRUCTCOPY_NO_SLOTS="):
        capabilities = Capabilities.from_environ(env(STRUCTCOPY_NO_SLOTS=raw))

    assert capabilities.slot_introspection


def test_resolution_is_logged(caplog):
    with caplog.at_level(logging.DEBUG, logger="structcopy"):
        capabilities = Capabilities.from_environ(env(STRUCTCOPY_FALLBACK_MEMO="1"))

    assert [record.getMessage() for record in caplog.records] == [f"Resolved {capabilities!r}"]


def test_capabilities_are_frozen():
    with pytest.raises(AttributeError):
        structcopy.CAPABILITIES.native_memo = False


def test_copy_uses_process_capabilities(monkeypatch):
    class Slotted:
        __slots__ = ("value",)

    original = Slotted()
    original.value = [1]

    monkeypatch.setattr(
        "structcopy._capabilities.CAPABILITIES", Capabilities(slot_introspection=False)
    )

    assert not hasattr(structcopy.copy(original), "value")


def test_variables_are_read_at_import():
    output = run_in_subprocess(
        """
        import structcopy
        from structcopy._cache import FallbackCache
        from structcopy._dispatch import Traversal

        assert not structcopy.CAPABILITIES.native_memo
        assert isinstance(Traversal(structcopy.CAPABILITIES).cache, FallbackCache)

        value = {"cycle": []}
        value["cycle"].append(value)
        clone = structcopy.copy(value)
        assert clone["cycle"][0] is clone
        print("ok")
        """,
        env(STRUCTCOPY_FALLBACK_MEMO="1"),
    )

    assert output == "ok"


def test_slots_disabled_at_import():
    output = run_in_subprocess(
        """
        import structcopy

        class Point:
            __slots__ = ("x",)

        point = Point()
        point.x = 1
        print(hasattr(structcopy.copy(point), "x"))
        """,
        env(STRUCTCOPY_NO_SLOTS="1"),
    )

    assert output == "False"
