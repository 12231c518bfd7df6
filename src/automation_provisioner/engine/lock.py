"""Local state locking."""

from __future__ import annotations

import fcntl
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from automation_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1


class StateLock:
    """Exclusive advisory lock on ``<state>.lock``.

    Waits up to ``timeout`` seconds for another process to release the lock;
    ``timeout=None`` waits forever.
    """

    def __init__(self, state_path: Path, *, timeout: float | None = 30.0) -> None:
        self._lock_path = Path(str(state_path) + ".lock")
        self._timeout = timeout
        self._file: TextIO | None = None

    def __enter__(self) -> StateLock:
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._lock_path.open("a+", encoding="utf-8")
        try:
            self._acquire(self._file)
        except BaseException:
            self._file.close()
            self._file = None
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._file is None:
            return
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None

    def _acquire(self, lock_file: TextIO) -> None:
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        waited = False
        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                pass
            except OSError as e:
                raise StateLockError(f"Cannot lock {self._lock_path}: {e}") from e

            if deadline is not None and time.monotonic() >= deadline:
                raise StateLockError(
                    f"State is locked by another process ({self._lock_path}); "
                    f"gave up after {self._timeout}s"
                )
            if not waited:
                logger.info("Waiting for state lock %s", self._lock_path)
                waited = True
            time.sleep(_POLL_INTERVAL)
