"""
Record source for the watched telemetry directory.

Each regular file in the directory holds one or more newline-separated JSON
records written by a producer. The source reads files as opaque bytes and
never interprets their content. Files are only removed through discard(),
which the publisher calls after a batch is delivered.

Producers should write atomically so a partially written file is never
collected. write_record() does this with a temporary dot-file and a rename;
dot-files are never collected.
"""

import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from .errors import SourceError

logger = logging.getLogger(__name__)

TEMP_PREFIX = "."


@dataclass(frozen=True)
class Record:
    """One record file: its name in the watched directory and its raw content."""

    identifier: str
    payload: bytes


@dataclass(frozen=True)
class PendingFile:
    """A file waiting for delivery, described without reading it."""

    identifier: str
    size_bytes: int
    modified_at: datetime


class DirectorySource:
    """Lists, reads and removes record files in a single flat directory."""

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)

    def validate(self) -> None:
        """Raise SourceError unless the watched directory exists."""
        if not self.directory.exists():
            raise SourceError(f"Watched directory does not exist: {self.directory}")
        if not self.directory.is_dir():
            raise SourceError(f"Watched path is not a directory: {self.directory}")

    def _entries(self) -> list[os.DirEntry]:
        try:
            with os.scandir(self.directory) as it:
                entries = [
                    entry
                    for entry in it
                    if not entry.name.startswith(TEMP_PREFIX) and entry.is_file()
                ]
        except OSError as e:
            raise SourceError(f"Cannot list {self.directory}: {e}") from e
        return sorted(entries, key=lambda entry: entry.name)

    def collect(self) -> list[Record]:
        """
        Read every record file currently in the directory.

        Files are returned in lexicographic order by name. Nothing is removed.
        A file that disappears between listing and reading is skipped; any
        other unreadable file is logged and left for the next cycle.

        Raises:
            SourceError: the directory itself cannot be listed.
        """
        records = []
        for entry in self._entries():
            try:
                payload = Path(entry.path).read_bytes()
            except FileNotFoundError:
                logger.debug(f"Record file vanished before read: {entry.name}")
                continue
            except OSError as e:
                logger.warning(f"Skipping unreadable record file {entry.name}: {e}")
                continue
            records.append(Record(identifier=entry.name, payload=payload))
        return records

    def pending(self) -> list[PendingFile]:
        """Describe the files awaiting delivery without reading their content."""
        files = []
        for entry in self._entries():
            try:
                stat = entry.stat()
            except FileNotFoundError:
                continue
            files.append(
                PendingFile(
                    identifier=entry.name,
                    size_bytes=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, UTC),
                )
            )
        return files

    def discard(self, identifiers: list[str]) -> int:
        """
        Permanently delete the named record files.

        Returns:
            Number of files actually removed.
        """
        removed = 0
        for identifier in identifiers:
            path = self.directory / identifier
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                logger.debug(f"Record file already removed: {identifier}")
            except OSError as e:
                logger.error(f"Failed to remove delivered record file {identifier}: {e}")
        return removed


def write_record(
    directory: str | os.PathLike,
    payload: bytes | str,
    prefix: str = "record",
) -> Path:
    """
    Atomically write a record file into the watched directory.

    The payload goes to a temporary dot-file first and is renamed into place,
    so collect() never sees partial content. Names sort by creation time.

    Returns:
        Path of the final record file.
    """
    if isinstance(payload, str):
        payload = payload.encode("utf-8")

    target_dir = Path(directory)
    name = f"{prefix}-{time.time_ns():020d}-{uuid.uuid4().hex[:8]}.jsonl"
    final_path = target_dir / name
    temp_path = target_dir / f"{TEMP_PREFIX}{name}.tmp"

    try:
        with open(temp_path, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, final_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    return final_path
