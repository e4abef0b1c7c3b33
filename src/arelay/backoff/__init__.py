r"""Backoff strategies for retry delays."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy", "ExponentialBackoff"]

from arelay.backoff.base import BaseBackoffStrategy
from arelay.backoff.exponential import ExponentialBackoff
