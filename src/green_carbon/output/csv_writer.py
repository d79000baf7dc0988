"""Append-only CSV writer for durable emissions records."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path

import portalocker

from green_carbon.exceptions import OutputError
from green_carbon.models import EmissionsResult
from green_carbon.output.record import RECORD_FIELDS, EmissionsRecord

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CsvRecordWriter:
    """Append one row per stopped session to a CSV file.

    The header is written only when the file is new or empty. Concurrent
    writers are serialised with an exclusive ``portalocker`` lock held for the
    duration of the append.
    """

    path: Path
    lock_timeout: float = 5.0

    def emit(self, result: EmissionsResult) -> None:
        self.append(EmissionsRecord.from_result(result))

    def append(self, record: EmissionsRecord) -> None:
        """Append ``record`` to the CSV file.

        Raises:
            OutputError: If the file cannot be locked or written.
        """
        target = Path(self.path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with portalocker.Lock(
                str(target),
                mode="a",
                timeout=self.lock_timeout,
                newline="",
                encoding="utf-8",
            ) as handle:
                handle.seek(0, io.SEEK_END)
                writer = csv.DictWriter(handle, fieldnames=RECORD_FIELDS)
                if handle.tell() == 0:
                    writer.writeheader()
                writer.writerow(record.to_row())
        except (OSError, portalocker.exceptions.LockException) as exc:
            raise OutputError(f"Failed to write emissions record to {target}") from exc
        LOGGER.info("Emissions record saved", extra={"path": str(target)})


def read_records(path: Path) -> list[dict[str, str]]:
    """Read every row of an emissions CSV file as string mappings."""
    with Path(path).open("r", newline="", encoding="utf-8") as handle:
        return list(csv.DictReader(handle))
