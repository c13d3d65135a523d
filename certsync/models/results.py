"""Per-secret and per-cycle sync results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class OutcomeStatus(StrEnum):
    SYNCED = "synced"
    MALFORMED = "malformed"
    DESTINATION_ERROR = "destination_error"
    PRECONDITION_FAILED = "precondition_failed"
    WRITE_BACK_FAILED = "write_back_failed"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of processing one secret for one destination."""

    destination: str
    identity: str
    status: OutcomeStatus
    reference: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SYNCED


@dataclass
class CycleReport:
    """Everything that happened in one poll-filter-sync-record cycle."""

    started_at: datetime
    finished_at: datetime | None = None
    secrets_fetched: int = 0
    selected: dict[str, int] = field(default_factory=dict)
    outcomes: list[SyncOutcome] = field(default_factory=list)
    error: str = ""

    @property
    def failures(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def synced(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.ok]

    def to_dict(self) -> dict[str, object]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "secrets_fetched": self.secrets_fetched,
            "selected": dict(self.selected),
            "error": self.error,
            "outcomes": [
                {
                    "destination": o.destination,
                    "identity": o.identity,
                    "status": o.status.value,
                    "reference": o.reference,
                    "error": o.error,
                }
                for o in self.outcomes
            ],
        }
