import json
import logging
import threading
from pathlib import Path
from typing import List, Protocol, Sequence

from .errors import SinkError
from .models import Record


class Sink(Protocol):
    def push(self, batch: Sequence[Record]) -> None:
        ...


class MemorySink:
    """Collects records in a list; handy for tests and library use."""

    def __init__(self) -> None:
        self.records: List[Record] = []
        self._lock = threading.Lock()

    def push(self, batch: Sequence[Record]) -> None:
        with self._lock:
            self.records.extend(batch)


class JsonlSink:
    """Append-only JSONL writer, one record per line in acceptance order."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def push(self, batch: Sequence[Record]) -> None:
        if not batch:
            return
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    for record in batch:
                        handle.write(json.dumps(record.to_dict(), ensure_ascii=False))
                        handle.write("\n")
        except OSError as exc:
            raise SinkError(f"Could not write {len(batch)} records to {self.path}: {exc}") from exc
        logging.debug("Appended %s records to %s", len(batch), self.path)
