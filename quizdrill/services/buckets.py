"""Review-urgency buckets for a candidate question pool."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Protocol


class HasNextReview(Protocol):
    next_review: datetime


@dataclass
class Buckets:
    overdue: list = field(default_factory=list)
    new: list = field(default_factory=list)
    scheduled: list = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.overdue) + len(self.new) + len(self.scheduled)

    def counts(self) -> dict:
        return {
            "overdue": len(self.overdue),
            "new": len(self.new),
            "scheduled": len(self.scheduled),
        }


def as_utc(dt: datetime) -> datetime:
    # SQLite hands DateTime columns back naive
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def classify(
    pool: Iterable,
    progress_by_id: Mapping[str, Optional[HasNextReview]],
    now: Optional[datetime] = None,
) -> Buckets:
    """Split pool items into overdue / new / scheduled.

    Items need an ``id``; progress_by_id maps question id to a record with
    ``next_review`` (missing or None means never graded).
    """
    now = as_utc(now or datetime.now(timezone.utc))
    buckets = Buckets()
    for question in pool:
        progress = progress_by_id.get(question.id)
        if progress is None:
            buckets.new.append(question)
        elif as_utc(progress.next_review) <= now:
            buckets.overdue.append(question)
        else:
            buckets.scheduled.append(question)
    return buckets
