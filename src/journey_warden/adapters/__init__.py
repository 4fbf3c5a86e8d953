"""Verification runners."""

from .base import VerificationRunner
from .runner import PlaywrightRunner

__all__ = ["PlaywrightRunner", "VerificationRunner"]
