"""Practice session composition.

Given a candidate pool and the learner's progress records, decides which
questions to serve and in what order:

1. Optional question-type filter (or "mixed")
2. Bucket by review urgency: overdue -> new -> scheduled
3. Shuffle inside each bucket, concatenate, truncate to the requested count
   (clamped to [1, settings.max_session_count])

A pool with no progress at all is a first session: it is drawn round-robin
across categories instead (interleave_by_category).

Only the bucket order is guaranteed; order within a bucket is random.
Remix sessions run the same pipeline over previously studied questions only.
"""

import itertools
import random
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from quizdrill.config import settings
from quizdrill.services.buckets import classify
from quizdrill.services.question_bank import QUESTION_TYPES

REMIX_TOPIC = "Remix"
MIN_COUNT = 1

_rng = random.Random()


@dataclass
class ComposedSession:
    questions: list
    requested: int
    available: int
    bucket_counts: dict = field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return len(self.questions) < self.requested


# --- request parameters ---

def clamp_count(count: int, maximum: Optional[int] = None) -> int:
    maximum = settings.max_session_count if maximum is None else maximum
    return min(maximum, max(MIN_COUNT, count))


def parse_count(raw, default: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Parse a requested question count, clamped to [1, maximum].

    Missing or unparseable values fall back to the default.
    """
    default = settings.default_session_count if default is None else default
    if raw is None:
        return default
    try:
        count = int(str(raw).strip())
    except ValueError:
        return default
    return clamp_count(count, maximum)


def parse_type_filter(raw: Optional[str]) -> Optional[str]:
    """Return one of QUESTION_TYPES, or None for mixed / unrecognised values."""
    if raw in QUESTION_TYPES:
        return raw
    return None


def parse_topics(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    topics = [t.strip() for t in raw.split(",") if t.strip()]
    return topics or None


# --- ordering ---

def shuffled(items: Iterable, rng: Optional[random.Random] = None) -> list:
    result = list(items)
    (rng or _rng).shuffle(result)
    return result


def filter_by_type(pool: Iterable, type_filter: Optional[str]) -> list:
    if not type_filter:
        return list(pool)
    return [q for q in pool if q.type == type_filter]


def order_by_urgency(
    pool: Sequence,
    progress_by_id: Mapping,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> tuple[list, dict]:
    """Overdue, then never-seen, then not-yet-due; shuffled within each bucket."""
    buckets = classify(pool, progress_by_id, now=now)
    ordered = (
        shuffled(buckets.overdue, rng)
        + shuffled(buckets.new, rng)
        + shuffled(buckets.scheduled, rng)
    )
    return ordered, buckets.counts()


def _compose(pool, progress_by_id, count, now, rng) -> ComposedSession:
    count = clamp_count(count)
    if not pool:
        return ComposedSession(questions=[], requested=count, available=0)

    if all(progress_by_id.get(q.id) is None for q in pool):
        # first pass over this pool: everything is new, spread categories
        questions = interleave_by_category(pool, max_questions=count, rng=rng)
        counts = {"overdue": 0, "new": len(pool), "scheduled": 0}
    else:
        ordered, counts = order_by_urgency(pool, progress_by_id, now=now, rng=rng)
        questions = ordered[:count]

    return ComposedSession(
        questions=questions,
        requested=count,
        available=len(pool),
        bucket_counts=counts,
    )


def compose_topic_session(
    pool: Sequence,
    progress_by_id: Mapping,
    count: int,
    type_filter: Optional[str] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> ComposedSession:
    """Build a single-topic session. An empty filtered pool is a valid empty session."""
    candidates = filter_by_type(pool, type_filter)
    return _compose(candidates, progress_by_id, count, now, rng)


def compose_remix_session(
    pool: Sequence,
    studied_ids: Iterable[str],
    progress_by_id: Mapping,
    count: int,
    type_filter: Optional[str] = None,
    topics: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> ComposedSession:
    """Build a cross-topic session from previously studied questions only.

    ``topics`` narrows the pool to the given topic keys (or category labels).
    """
    studied = set(studied_ids)
    candidates = [q for q in pool if q.id in studied]
    if topics:
        wanted = set(topics)
        candidates = [q for q in candidates if q.topic in wanted or q.category in wanted]
    candidates = filter_by_type(candidates, type_filter)
    return _compose(candidates, progress_by_id, count, now, rng)


# --- initial interleaving ---

def round_robin(queues: Sequence[list]) -> Iterator:
    """Pop one item from each non-empty queue per round until all are drained."""
    queues = [list(q) for q in queues]
    while any(queues):
        for queue in queues:
            if queue:
                yield queue.pop()


def interleave_by_category(
    questions: Iterable,
    max_questions: int = 10,
    rng: Optional[random.Random] = None,
) -> list:
    """Mix a flat pool so no category dominates the start of a session.

    Categories are shuffled independently and drawn round-robin up to
    max_questions, then the picked set is shuffled once more.
    """
    by_category: dict[str, list] = {}
    for question in questions:
        by_category.setdefault(question.category, []).append(question)

    pools = [shuffled(pool, rng) for pool in by_category.values()]
    picked = list(itertools.islice(round_robin(pools), max(0, max_questions)))
    return shuffled(picked, rng)
