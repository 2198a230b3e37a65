"""Rewriting of the managed fragment inside the target hosts file."""

import errno
import os
import shutil
import tempfile
from typing import Optional

from .errors import FileAccessError
from .fragment import render, strip_managed
from .logging_config import get_logger, log_function_entry, log_function_exit, log_reconcile_event
from .models import AddressBook

logger = get_logger(__name__)


class FileReconciler:
    """Owns the managed fragment of a single hosts file.

    The file must already exist; kubehosts never creates it.
    """

    def __init__(self, path: str, atomic: bool = True):
        self.path = path
        self.atomic = atomic
        self._original: Optional[bytes] = None

    @property
    def original(self) -> Optional[bytes]:
        """The prefix captured by :meth:`snapshot`, if any."""
        return self._original

    def capture_original(self) -> bytes:
        """Read the file and return everything before the managed fragment.

        Raises:
            FileAccessError: If the file cannot be read.
            MalformedFileError: If the content cannot be split.
        """
        try:
            with open(self.path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise FileAccessError(f"Cannot read {self.path}: {e}") from e
        return strip_managed(content)

    def snapshot(self) -> bytes:
        """Capture the original prefix once, for :meth:`restore_original`."""
        if self._original is None:
            self._original = self.capture_original()
            logger.debug("Captured original file content", path=self.path, size=len(self._original))
        return self._original

    def reconcile(self, address_book: AddressBook) -> None:
        """Regenerate the managed fragment from ``address_book``."""
        log_function_entry(logger, "reconcile", path=self.path, ips=len(address_book))

        prefix = self.capture_original()
        self._write(prefix + render(address_book))

        log_reconcile_event(logger, "file_written",
                            path=self.path,
                            ips=len(address_book),
                            hosts=sum(len(h) for h in address_book.values()))
        log_function_exit(logger, "reconcile", status="success")

    def restore_original(self) -> None:
        """Write back the snapshot prefix, removing the managed fragment."""
        original = self.snapshot()
        self._write(original)
        log_reconcile_event(logger, "file_restored", path=self.path)

    def _write(self, data: bytes) -> None:
        if self.atomic:
            self._write_atomic(data)
        else:
            self._write_in_place(data)

    def _write_in_place(self, data: bytes) -> None:
        # A failure part way leaves a truncated file behind
        try:
            with open(self.path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise FileAccessError(f"Cannot write {self.path}: {e}") from e

    def _write_atomic(self, data: bytes) -> None:
        # Replace the file a symlink points to, never the link itself
        target = os.path.realpath(self.path)
        directory = os.path.dirname(target)
        name = os.path.basename(target)
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory)
        except OSError as e:
            if e.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
                logger.warning("Cannot create temporary file, writing in place",
                               path=self.path, directory=directory, error=str(e))
                self._write_in_place(data)
                return
            raise FileAccessError(f"Cannot create temporary file next to {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            shutil.copymode(target, tmp_path)
            self._copy_owner(target, tmp_path)
            os.replace(tmp_path, target)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            # Bind mounts (a pod's /etc/hosts) cannot be renamed over
            if e.errno in (errno.EBUSY, errno.EXDEV):
                logger.warning("Cannot replace file atomically, writing in place",
                               path=self.path, error=str(e))
                self._write_in_place(data)
                return
            raise FileAccessError(f"Cannot write {self.path}: {e}") from e

    def _copy_owner(self, source: str, destination: str) -> None:
        st = os.stat(source)
        current = os.stat(destination)
        if (st.st_uid, st.st_gid) == (current.st_uid, current.st_gid):
            return
        try:
            os.chown(destination, st.st_uid, st.st_gid)
        except PermissionError as e:
            logger.warning("Cannot keep file ownership", path=self.path,
                           uid=st.st_uid, gid=st.st_gid, error=str(e))
