"""Report history with an explicit load / append / clear lifecycle.

The history lives in memory for the session and is mirrored to a named
durable slot. Every write replaces the whole slot atomically, and a slot
that cannot be read or parsed loads as an empty history.
"""

import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from blood_report.extraction.rule_extractor import NOT_FOUND, ParameterName
from blood_report.utils.config import StorageConfig
from blood_report.utils.logger import get_logger

logger = get_logger(__name__)


class Report(BaseModel):
    """Parsed values for one uploaded file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_name: str = Field(alias="fileName")
    extracted_values: dict[str, str] = Field(alias="extractedValues")
    created_at: datetime | None = Field(default=None, alias="createdAt")


ReportHistory = tuple[Report, ...]

_HISTORY_ADAPTER = TypeAdapter(list[Report])


@dataclass
class ReportSummary:
    """One line of the past-reports listing."""

    index: int
    file_name: str
    hemoglobin: str
    created_at: datetime | None = None


class HistorySlot(ABC):
    """Durable storage for serialized histories, addressed by name."""

    @abstractmethod
    def get(self, name: str) -> bytes | None:
        """Return the stored blob, or ``None`` if the slot is empty."""

    @abstractmethod
    def set(self, name: str, data: bytes) -> None:
        """Replace the slot contents in one step."""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Erase the slot. Deleting an empty slot is not an error."""


class MemorySlot(HistorySlot):
    """Process-local slot, used for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def get(self, name: str) -> bytes | None:
        return self._data.get(name)

    def set(self, name: str, data: bytes) -> None:
        self._data[name] = data

    def delete(self, name: str) -> None:
        self._data.pop(name, None)


class JSONFileSlot(HistorySlot):
    """Slot stored as ``<directory>/<name>.json``.

    Writes go to a temporary file in the same directory which then
    replaces the target with :func:`os.replace`, so readers only ever see
    the previous or the new contents.

    Args:
        directory: Directory holding the slot files.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def get(self, name: str) -> bytes | None:
        path = self.path_for(name)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, name: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.directory, prefix=f".{name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path_for(name))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, name: str) -> None:
        self.path_for(name).unlink(missing_ok=True)


class ReportStore:
    """Append-only, clearable history of parsed reports.

    Args:
        slot: Durable slot backing the history.
        slot_name: Name of the slot entry holding the history.
    """

    def __init__(self, slot: HistorySlot, slot_name: str = "pastReports") -> None:
        self.slot = slot
        self.slot_name = slot_name
        self._history: ReportHistory = ()
        self._loaded = False
        # Serializes read-modify-write of the slot across API worker threads.
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: StorageConfig) -> "ReportStore":
        """Build a store from the ``storage`` section of the app config."""
        slot: HistorySlot
        if config.backend == "memory":
            slot = MemorySlot()
        else:
            slot = JSONFileSlot(config.history_dir)
        return cls(slot, config.slot_name)

    @property
    def history(self) -> ReportHistory:
        with self._lock:
            if not self._loaded:
                return self.load()
            return self._history

    def load(self) -> ReportHistory:
        """Read the persisted history.

        Returns:
            The stored reports in chronological order. A missing,
            unreadable or malformed slot yields an empty history.
        """
        with self._lock:
            self._history = self._read()
            self._loaded = True
            logger.debug(
                "Loaded %d reports from slot %s", len(self._history), self.slot_name
            )
            return self._history

    def append(self, report: Report) -> ReportHistory:
        """Add ``report`` at the end of the history and persist it.

        Args:
            report: The report to record.

        Returns:
            The updated history.
        """
        with self._lock:
            updated = self.history + (report,)
            blob = _HISTORY_ADAPTER.dump_json(
                list(updated), by_alias=True, exclude_none=True
            )
            self.slot.set(self.slot_name, blob)
            self._history = updated
        logger.info(
            "Stored report for %s (%d in history)", report.file_name, len(updated)
        )
        return updated

    def clear(self) -> ReportHistory:
        """Erase the persisted history and return the empty history."""
        with self._lock:
            self.slot.delete(self.slot_name)
            self._history = ()
            self._loaded = True
        logger.info("Cleared report history")
        return ()

    def get(self, index: int) -> Report:
        """Return the report at ``index``.

        Raises:
            IndexError: If no report is stored at that position.
        """
        history = self.history
        if not 0 <= index < len(history):
            raise IndexError(f"No report at index {index}")
        return history[index]

    def summarize(self) -> list[ReportSummary]:
        """Summarize each stored report by file name and Hemoglobin value."""
        return [
            ReportSummary(
                index=i,
                file_name=report.file_name,
                hemoglobin=report.extracted_values.get(
                    ParameterName.HEMOGLOBIN, NOT_FOUND
                ),
                created_at=report.created_at,
            )
            for i, report in enumerate(self.history)
        ]

    def _read(self) -> ReportHistory:
        try:
            blob = self.slot.get(self.slot_name)
        except OSError as exc:
            logger.warning("Could not read report history: %s", exc)
            return ()

        if blob is None:
            return ()

        try:
            return tuple(_HISTORY_ADAPTER.validate_json(blob))
        except ValidationError as exc:
            logger.warning(
                "Discarding malformed report history in %s: %d errors",
                self.slot_name,
                exc.error_count(),
            )
            return ()
