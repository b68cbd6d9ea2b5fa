"""In-memory catalogue of ingested documents and the ingestion ledger."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Set

from docshelf.models import DocumentRecord


class DocumentCatalogue:
    """Thread-safe repository of ingested paths and their records.

    A path moves through ``reserve`` (in flight) to ``commit`` (ingested) or
    back out through ``release``. Only committed paths are in the ledger, and
    every committed path has exactly one record.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ingested: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._records: List[DocumentRecord] = []

    @staticmethod
    def _key(path: Path | str) -> str:
        return str(Path(path).absolute())

    def reserve(self, path: Path | str) -> bool:
        """Atomically claim a path; False if it is ingested or already claimed."""
        key = self._key(path)
        with self._lock:
            if key in self._ingested or key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def release(self, path: Path | str) -> None:
        with self._lock:
            self._in_flight.discard(self._key(path))

    def commit(self, record: DocumentRecord) -> None:
        key = self._key(record.path)
        with self._lock:
            if key in self._ingested:
                raise ValueError(f"Path already ingested: {key}")
            self._in_flight.discard(key)
            self._ingested.add(key)
            self._records.append(record)

    def contains(self, path: Path | str) -> bool:
        with self._lock:
            return self._key(path) in self._ingested

    def documents(self) -> List[DocumentRecord]:
        with self._lock:
            return list(self._records)

    def topics(self) -> List[str]:
        with self._lock:
            return sorted({record.topic for record in self._records})

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
