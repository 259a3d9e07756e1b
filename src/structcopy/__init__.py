# SPDX-FileCopyrightText: 2025-present structcopy contributors
#
# SPDX-License-Identifier: MIT
"""Structural deep copy of arbitrary object graphs, cycles included."""
from structcopy._capabilities import CAPABILITIES
from structcopy._capabilities import Capabilities
from structcopy._dispatch import copy

__all__ = ["CAPABILITIES", "Capabilities", "copy"]
