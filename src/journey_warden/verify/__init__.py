"""Failure classification and report reading."""

from .classifier import classify, classify_all, classify_batch, summarize_classifications
from .errors import ErrorKind, compute_fingerprint, normalize_message
from .report import TestResult, extract_test_results, get_summary, load_report

__all__ = [
    "ErrorKind",
    "TestResult",
    "classify",
    "classify_all",
    "classify_batch",
    "compute_fingerprint",
    "extract_test_results",
    "get_summary",
    "load_report",
    "normalize_message",
    "summarize_classifications",
]
