"""
Per-item outcomes for one run of a check-in job.

Each timing or check-in a job touches ends in exactly one ItemResult;
the JobReport is what the Celery task returns and the CLI prints.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ItemOutcome(str, Enum):
    CREATED = "created"
    REMINDED = "reminded"
    ESCALATED = "escalated"
    SKIPPED = "skipped"
    FAILED = "failed"
    DEFERRED = "deferred"


@dataclass
class ItemResult:
    item_id: Any
    outcome: ItemOutcome
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.item_id,
            "outcome": self.outcome.value,
            "reason": self.reason,
        }


@dataclass
class JobReport:
    job: str
    started_at: datetime
    status: str = "ok"
    message: Optional[str] = None
    items: List[ItemResult] = field(default_factory=list)

    def add(self, result: ItemResult) -> ItemResult:
        self.items.append(result)
        return result

    def counts(self) -> Dict[str, int]:
        counter = Counter(r.outcome.value for r in self.items)
        return {outcome.value: counter.get(outcome.value, 0) for outcome in ItemOutcome}

    def outcomes(self, outcome: ItemOutcome) -> List[ItemResult]:
        return [r for r in self.items if r.outcome == outcome]

    def to_dict(self) -> Dict[str, Any]:
        failed = self.outcomes(ItemOutcome.FAILED)
        return {
            "job": self.job,
            "status": self.status,
            "message": self.message,
            "started_at": self.started_at.isoformat(),
            "processed": len(self.items),
            "counts": self.counts(),
            "items": [r.to_dict() for r in self.items],
            "errors": [r.to_dict() for r in failed] if failed else None,
        }
