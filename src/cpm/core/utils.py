# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import math
from typing import Union

_HTML_ESCAPES = {"<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#039;"}


def format_duration(milliseconds: Union[int, float]) -> str:
    """Render a millisecond count as ``1h 23m 45s`` / ``1m 1s`` / ``0s``."""
    if isinstance(milliseconds, float) and not math.isfinite(milliseconds):
        milliseconds = 0
    seconds = max(0, int(milliseconds)) // 1000
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def sanitize_input(text: str) -> str:
    """Escape the characters that matter when echoing user text into HTML."""
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in (text or ""))
