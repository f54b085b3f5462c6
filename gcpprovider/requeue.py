"""Error that asks the caller to retry an operation after a delay."""

from __future__ import annotations


class RequeueAfterError(Exception):
    """Signals that an operation should be retried after ``requeue_after`` seconds."""

    def __init__(self, cause: BaseException, requeue_after: float) -> None:
        self.cause = cause
        self.requeue_after = float(requeue_after)
        super().__init__(f"requeue in {self.requeue_after:g}s due to {cause}")