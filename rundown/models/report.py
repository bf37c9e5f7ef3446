"""Report-time value objects passed between services."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, Dict, Any

from .tracker import WorkItem


@dataclass
class CategorizedWorkItems:
    """Work items split into the four mutually exclusive report buckets."""
    completed: List[WorkItem] = field(default_factory=list)
    started: List[WorkItem] = field(default_factory=list)
    updated: List[WorkItem] = field(default_factory=list)
    other_open: List[WorkItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.completed) + len(self.started) + len(self.updated) + len(self.other_open)

    def counts(self) -> Dict[str, int]:
        return {
            "completed": len(self.completed),
            "started": len(self.started),
            "updated": len(self.updated),
            "other_open": len(self.other_open),
        }


@dataclass
class CooldownStatus:
    is_in_cooldown: bool
    week_number: Optional[int] = None
    total_weeks: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_in_cooldown": self.is_in_cooldown,
            "week_number": self.week_number,
            "total_weeks": self.total_weeks,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


@dataclass
class ReportResult:
    """A rendered report with the metadata logged on delivery."""
    report_text: str
    issues_count: int
    in_cooldown: bool
    period_start: datetime
    period_end: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_text": self.report_text,
            "issues_count": self.issues_count,
            "in_cooldown": self.in_cooldown,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportResult":
        return cls(
            report_text=data["report_text"],
            issues_count=int(data["issues_count"]),
            in_cooldown=bool(data["in_cooldown"]),
            period_start=datetime.fromisoformat(data["period_start"]),
            period_end=datetime.fromisoformat(data["period_end"]),
        )


@dataclass
class DeliveryResult:
    user_id: int
    success: bool
    skipped: bool = False
    error: Optional[str] = None
    log_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "success": self.success,
            "skipped": self.skipped,
            "error": self.error,
            "log_id": self.log_id,
        }


@dataclass
class DeliverySummary:
    """Outcome of a send-to-all run."""
    total_users: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    results: List[DeliveryResult] = field(default_factory=list)

    def record(self, result: DeliveryResult) -> None:
        self.results.append(result)
        if result.skipped:
            self.skipped_count += 1
        elif result.success:
            self.success_count += 1
        else:
            self.failure_count += 1

    @property
    def duration_ms(self) -> Optional[int]:
        if not self.started_at or not self.finished_at:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_users": self.total_users,
            "success": self.success_count,
            "failure": self.failure_count,
            "skipped": self.skipped_count,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
        }
