"""Local directory sink reader for object-store dumps (e.g. ``aws s3 sync`` output)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from ..contracts import MalformedRecordError, SinkUnavailableError
from .json_stream import DEFAULT_CHUNK_SIZE, iter_record_logs

logger = logging.getLogger(__name__)


class LocalFileSinkReader:
    kind = "file"

    def __init__(self, root: Path, *, pattern: str = "*", chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.root = Path(root)
        self.pattern = pattern
        self.chunk_size = chunk_size
        self.objects_scanned = 0
        self.malformed_records = 0

    def list_paths(self) -> list[Path]:
        if self.root.is_file():
            return [self.root]
        if not self.root.is_dir():
            raise SinkUnavailableError(f"LOCAL_ROOT_MISSING:{self.root}")
        return sorted(path for path in self.root.rglob(self.pattern) if path.is_file())

    def iter_payloads(self) -> Iterator[str]:
        for path in self.list_paths():
            yield from self._iter_file(path)

    def _iter_file(self, path: Path) -> Iterator[str]:
        try:
            handle = path.open("rb")
        except OSError as exc:
            raise SinkUnavailableError(f"LOCAL_FILE_READ_FAILED:{path} detail={exc}") from exc
        self.objects_scanned += 1
        with handle:
            try:
                for log in iter_record_logs(handle, chunk_size=self.chunk_size, source=str(path)):
                    if isinstance(log, MalformedRecordError):
                        self.malformed_records += 1
                        logger.warning("[TEST ERROR] Malformed log entry path=%s error=%s", path, log)
                        continue
                    yield log
            except OSError as exc:
                raise SinkUnavailableError(f"LOCAL_FILE_READ_FAILED:{path} detail={exc}") from exc
