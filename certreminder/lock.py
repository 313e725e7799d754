"""Single-instance guard so overlapping runs do not send duplicate reminders."""

import fcntl
import logging
import os
from pathlib import Path

from .errors import AlreadyRunning

logger = logging.getLogger(__name__)


class RunLock:
    """Exclusive PID lock file held for the duration of a run.

    Uses ``flock`` so a lock left behind by a crashed process is released by
    the kernel and never needs stale-PID cleanup.

    Usage::

        with RunLock(Path("/run/lock/certreminder.lock")):
            run_once(...)
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file = None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            AlreadyRunning: If another process holds the lock.
            OSError: If the lock file cannot be created.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        f = open(self.path, "a+")
        try:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            f.seek(0)
            holder = f.read().strip() or "unknown"
            f.close()
            raise AlreadyRunning(f"Another run holds {self.path} (PID {holder})")

        f.seek(0)
        f.truncate()
        f.write(str(os.getpid()))
        f.flush()
        self._file = f
        logger.debug("Acquired run lock %s", self.path)

    def release(self) -> None:
        if self._file is None:
            return
        fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        self._file.close()
        self._file = None
        logger.debug("Released run lock %s", self.path)

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
