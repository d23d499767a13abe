"""
Run coordinator module for bind9sync.

This module is responsible for keeping overlapping runs apart and for the
lifetime of the decoded TSIG key file.
"""

import base64
import binascii
import fcntl
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from bind9sync.models.errors import (
    AlreadyRunningError,
    ConfigurationError,
    CredentialError,
)


class RunCoordinator:
    """
    Holds the run lock and the decoded key file for the duration of a run.

    Used as a context manager; both resources are released on every exit path.
    """

    KEY_FILE_NAME = "tsig.key"

    def __init__(self, lock_file: str, key_material_b64: str):
        """
        Initialize a RunCoordinator.

        Args:
            lock_file: Path of the lock file shared by all runs
            key_material_b64: Base64 encoded key file contents
        """
        self.lock_file = Path(lock_file)
        self.key_material_b64 = key_material_b64
        self.key_path: Optional[Path] = None
        self._lock_fd: Optional[int] = None
        self._key_dir: Optional[str] = None
        self.logger = logging.getLogger("bind9sync.run-coordinator")

    def __enter__(self) -> "RunCoordinator":
        self.acquire_lock()
        try:
            self.write_key()
        except BaseException:
            self.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def acquire_lock(self) -> None:
        """
        Take the run lock without waiting.

        Raises:
            AlreadyRunningError: If another run holds the lock
            ConfigurationError: If the lock file cannot be opened
        """
        try:
            fd = os.open(self.lock_file, os.O_WRONLY | os.O_CREAT, 0o600)
        except OSError as e:
            raise ConfigurationError(
                f"cannot open lock file {self.lock_file}: {e.strerror or e}"
            ) from e
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            raise AlreadyRunningError(
                f"another instance is running (lock: {self.lock_file})"
            )
        except BaseException:
            os.close(fd)
            raise
        self._lock_fd = fd
        self.logger.debug(f"Acquired run lock {self.lock_file}")

    def write_key(self) -> Path:
        """
        Decode the key material into a private temporary directory.

        Returns:
            Path: Location of the key file

        Raises:
            CredentialError: If the material is not valid base64 or cannot be written
        """
        try:
            key_bytes = base64.b64decode(self.key_material_b64.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise CredentialError(f"failed to decode BIND_TSIG_KEYFILE_B64: {e}") from e

        self._key_dir = tempfile.mkdtemp(prefix="bind9sync-")
        key_path = Path(self._key_dir) / self.KEY_FILE_NAME
        try:
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(key_bytes)
        except OSError as e:
            raise CredentialError(f"failed to write key file: {e}") from e

        self.key_path = key_path
        return key_path

    def release(self) -> None:
        """Remove the key directory and drop the lock. Safe to call twice."""
        if self._key_dir is not None:
            shutil.rmtree(self._key_dir, ignore_errors=True)
            self.logger.debug(f"Removed key directory {self._key_dir}")
            self._key_dir = None
            self.key_path = None

        if self._lock_fd is not None:
            try:
                fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
            finally:
                os.close(self._lock_fd)
                self._lock_fd = None
