"""
Step receipts and the run report.

Each workflow stage appends a ``StepReceipt``; the ``RunReport`` collects
them along with the warnings printed to the operator and the backup
made, if any.  The report is what gets written to the run ledger.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def new_run_id() -> str:
    return f"run-{datetime.now(UTC).strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex[:6]}"


class StepReceipt(BaseModel):
    """Outcome of one workflow stage."""

    step: str
    status: Literal["ok", "warned", "skipped", "failed"] = "ok"
    detail: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class RunReport(BaseModel):
    """Everything worth remembering about one workflow run."""

    run_id: str = Field(default_factory=new_run_id)
    workflow: str
    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = ""
    duration_ms: int = 0

    status: Literal["running", "ok", "failed"] = "running"
    error: str | None = None

    product: str = ""
    kernel: str = ""
    backup_path: str | None = None

    steps: list[StepReceipt] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def record(self, step: str, status: str = "ok", detail: str = "", **metadata: Any) -> StepReceipt:
        receipt = StepReceipt(step=step, status=status, detail=detail, metadata=metadata)
        self.steps.append(receipt)
        return receipt

    def step(self, name: str) -> StepReceipt | None:
        for receipt in self.steps:
            if receipt.step == name:
                return receipt
        return None

    def finish(self, error: str | None = None) -> None:
        self.ended_at = _now_iso()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.ended_at)
        self.duration_ms = int((end - start).total_seconds() * 1000)
        self.error = error
        self.status = "failed" if error else "ok"
