"""Base interface for verification runners."""

from abc import ABC, abstractmethod
from pathlib import Path

from ..healing.loop import VerifyFn, VerifyResult


class VerificationRunner(ABC):
    """Runs one test file and reports whether it passed."""

    @abstractmethod
    def verify(self, test_file: Path) -> VerifyResult:
        """
        Run the test file once.

        Returns:
            VerifyResult with the error texts of every failing test
        """
        pass

    def verify_fn_for(self, test_file: str | Path) -> VerifyFn:
        """Bind this runner to one file, in the shape the healing loop expects."""
        path = Path(test_file)
        return lambda: self.verify(path)
