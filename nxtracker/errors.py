"""
errors.py

Responsibility: Common base class for failures raised by the tracker.

Each module defines its own specific errors next to the code that raises them;
they all derive from `TrackerError` so the CLI can catch them in one place.
"""

from __future__ import annotations


class TrackerError(RuntimeError):
    pass
