"""Resilient request layer."""
from __future__ import annotations

from .cancellation import CancellationToken
from .executor import ResilientRequestExecutor

__all__ = ["CancellationToken", "ResilientRequestExecutor"]
