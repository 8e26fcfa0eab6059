"""
Run ledger — append-only history of workflow runs.

Every run, successful or not, appends one ``RunReport`` as a JSON line
(NDJSON).  It answers "what did the tool do to this machine, and where
are the backups" after the terminal scrollback is gone.

The ledger is append-only: entries are never modified or deleted.
A ledger that cannot be written is logged and otherwise ignored; it
never fails a run.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from hostfix.core.models.run import RunReport

logger = logging.getLogger(__name__)


class RunLedger:
    """Append-only NDJSON writer/reader for run reports."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, report: RunReport) -> bool:
        """Append a report. Returns False (and logs) if the ledger is unwritable."""
        line = json.dumps(report.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write run ledger %s: %s", self._path, e)
            return False
        logger.debug("Ledger entry written: %s/%s", report.workflow, report.run_id)
        return True

    def read_all(self) -> list[RunReport]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(RunReport.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt ledger entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read run ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[RunReport]:
        """The last ``n`` entries, oldest first."""
        if n <= 0:
            return []
        return self.read_all()[-n:]
