# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import functools
from typing import Any

import pytest

import structcopy
from structcopy import Capabilities


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--memory",
        action="store_true",
        default=False,
        help="Run memory leak tests (slow)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip memory tests unless --memory flag is provided."""
    if not config.getoption("--memory"):
        skip_memory = pytest.mark.skip(reason="need --memory option to run")
        for item in items:
            if "memory" in item.keywords:
                item.add_marker(skip_memory)


NATIVE = Capabilities()
FALLBACK = Capabilities(native_memo=False)
NO_SLOTS = Capabilities(slot_introspection=False)


@pytest.fixture(
    params=[
        pytest.param(NATIVE, id="native_memo"),
        pytest.param(FALLBACK, id="fallback_memo"),
    ]
)
def capabilities(request) -> Capabilities:
    return request.param


@pytest.fixture
def copy(capabilities):
    return functools.partial(structcopy.copy, capabilities=capabilities)


class RecordingCopy:
    """
    Stands in for the traversal when a copier is tested on its own.

    Children come back unchanged and are recorded in ``calls``.
    """

    def __init__(self, capabilities: Capabilities = NATIVE) -> None:
        self.capabilities = capabilities
        self.calls: list[Any] = []
        self.memo: dict[int, Any] = {}

    def __call__(self, value: Any) -> Any:
        self.calls.append(value)
        return value

    def memoize(self, original: Any, clone: Any) -> Any:
        self.memo[id(original)] = clone
        return clone

    def lookup(self, original: Any, default: Any = None) -> Any:
        return self.memo.get(id(original), default)

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def recording_copy() -> RecordingCopy:
    return RecordingCopy()


@pytest.fixture
def recording_copy_factory():
    return RecordingCopy
