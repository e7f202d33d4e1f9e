"""Cancellation and deadline context for build phases.

A BuildContext carries an optional monotonic deadline and a cancellation
flag. Child contexts created with `with_timeout` inherit the parent's
cancellation and never outlive the parent's deadline; cancelling a child
does not cancel its parent.
"""

from __future__ import annotations

import threading
import time

from deploy_imagegen.errors import BuildCancelledError, BuildTimeoutError
from deploy_imagegen.types import BuildPhase


class BuildContext:
    """Deadline and cancellation token shared by the steps of one phase."""

    def __init__(
        self,
        deadline: float | None = None,
        timeout: float | None = None,
        parent: BuildContext | None = None,
    ) -> None:
        self._deadline = deadline
        self._timeout = timeout
        self._parent = parent
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> BuildContext:
        """Return a context with no deadline that is never cancelled implicitly."""
        return cls()

    def with_timeout(self, seconds: float) -> BuildContext:
        """Derive a child context that expires `seconds` from now.

        Args:
            seconds: Timeout in seconds, starting now.

        Returns:
            Child BuildContext bounded by both timeouts.
        """
        deadline = time.monotonic() + seconds
        timeout = seconds
        if self._deadline is not None and self._deadline < deadline:
            # The parent's deadline fires first, so report its timeout
            deadline = self._deadline
            timeout = self._timeout
        return BuildContext(deadline=deadline, timeout=timeout, parent=self)

    @property
    def deadline(self) -> float | None:
        """Monotonic deadline, or None when unbounded."""
        return self._deadline

    @property
    def timeout(self) -> float | None:
        """Timeout the deadline was derived from, if any."""
        return self._timeout

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left until the deadline (never negative), or None."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, phase: BuildPhase) -> None:
        """Fail fast if the context is cancelled or past its deadline.

        Args:
            phase: Phase to attribute the failure to.

        Raises:
            BuildCancelledError: If the context was cancelled.
            BuildTimeoutError: If the deadline has passed.
        """
        if self.cancelled:
            raise BuildCancelledError(f"{phase.value} cancelled", phase)
        if self.expired:
            raise BuildTimeoutError(
                f"{phase.value} exceeded deadline of {self._timeout}s",
                phase,
                timeout=self._timeout,
            )


__all__ = ["BuildContext"]
