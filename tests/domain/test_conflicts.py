"""Unit tests for retry_on_conflict."""

import pytest

from commerce.domain.exceptions import ConcurrentModification, InsufficientStock
from commerce.domain.service.conflicts import retry_on_conflict


class _Flaky:

    def __init__(self, conflicts: int, error: Exception | None = None) -> None:
        self.calls = 0
        self._conflicts = conflicts
        self._error = error

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self._conflicts:
            raise ConcurrentModification("stale")
        if self._error is not None:
            raise self._error
        return "done"


class TestRetryOnConflict:

    def test_returns_first_success(self):
        op = _Flaky(conflicts=0)
        assert retry_on_conflict(op) == "done"
        assert op.calls == 1

    def test_retries_conflicts(self):
        op = _Flaky(conflicts=2)
        assert retry_on_conflict(op, attempts=3) == "done"
        assert op.calls == 3

    def test_reraises_after_last_attempt(self):
        op = _Flaky(conflicts=5)
        with pytest.raises(ConcurrentModification):
            retry_on_conflict(op, attempts=2)
        assert op.calls == 2

    def test_business_errors_are_not_retried(self):
        op = _Flaky(conflicts=1, error=InsufficientStock("gone"))
        with pytest.raises(InsufficientStock):
            retry_on_conflict(op, attempts=5)
        assert op.calls == 2

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            retry_on_conflict(_Flaky(conflicts=0), attempts=0)
