"""
Error kinds raised by the detection core.

Validation errors subclass ``ValueError`` so callers that already catch bad
inputs generically keep working; ``ResourceExhausted`` is a ``RuntimeError``.
"""

from __future__ import annotations


class DetectionError(Exception):
    """Base class for every error surfaced by ``nvision``."""


class InvalidInput(DetectionError, ValueError):
    """``scan_data`` is missing, ragged, non-numeric or non-finite."""


class InvalidConfig(DetectionError, ValueError):
    """A ``DetectionConfig`` field is out of range."""


class ResourceExhausted(DetectionError, RuntimeError):
    """A stage ran out of memory. Not retried."""
