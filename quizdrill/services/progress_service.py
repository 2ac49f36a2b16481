"""Progress storage around the scheduling core.

Loads the learner's UserProgress rows for a candidate pool, hands them to
the session composer, and persists SM-2 updates for graded answers.
"""

import logging
import random
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizdrill.models import Question, User, UserProgress
from quizdrill.services.buckets import as_utc
from quizdrill.services.question_bank import get_all_questions, get_questions_by_topic
from quizdrill.services.scheduler import (
    DEFAULT_EASINESS,
    DEFAULT_INTERVAL,
    DEFAULT_REPETITION,
    QUALITY_RANGE,
    compute_schedule,
)
from quizdrill.services.session_composer import (
    REMIX_TOPIC,
    compose_remix_session,
    compose_topic_session,
)

logger = logging.getLogger(__name__)


class UnknownTopicError(ValueError):
    pass


def load_progress_map(
    db: Session, user_id: str, question_ids: Optional[Iterable[str]] = None
) -> dict[str, UserProgress]:
    """Map question_id -> UserProgress for the user. All rows when question_ids is None."""
    query = db.query(UserProgress).filter(UserProgress.user_id == user_id)
    if question_ids is not None:
        ids = list(question_ids)
        if not ids:
            return {}
        query = query.filter(UserProgress.question_id.in_(ids))
    return {p.question_id: p for p in query.all()}


def studied_question_ids(db: Session, user_id: str) -> set[str]:
    rows = db.query(UserProgress.question_id).filter(UserProgress.user_id == user_id).all()
    return {r[0] for r in rows}


def build_question_session(
    db: Session,
    user_id: str,
    topic: str,
    count: int,
    type_filter: Optional[str] = None,
    topics: Optional[list[str]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> dict:
    """Pick the questions for one practice session.

    ``topic == "Remix"`` draws from everything the user has studied, optionally
    narrowed by ``topics``. Any other unknown topic raises UnknownTopicError.
    """
    if topic == REMIX_TOPIC:
        # studied == has a progress row
        progress = load_progress_map(db, user_id)
        composed = compose_remix_session(
            get_all_questions(),
            studied_ids=progress.keys(),
            progress_by_id=progress,
            count=count,
            type_filter=type_filter,
            topics=topics,
            now=now,
            rng=rng,
        )
    else:
        pool = get_questions_by_topic(topic)
        if not pool:
            raise UnknownTopicError(f"Unknown topic: {topic}")
        progress = load_progress_map(db, user_id, [q.id for q in pool])
        composed = compose_topic_session(
            pool, progress, count, type_filter=type_filter, now=now, rng=rng
        )

    return {
        "questions": [q.to_dict() for q in composed.questions],
        "requested": composed.requested,
        "available": composed.available,
        "buckets": composed.bucket_counts,
    }


def _update_activity(db: Session, user_id: str, now: datetime) -> None:
    """Stamp last_activity and advance the daily streak."""
    user = db.get(User, user_id)
    if user is None:
        logger.warning("Activity for unknown user %s not recorded", user_id)
        return

    today = now.date()
    if user.last_activity is None:
        user.streak_count = 1
    else:
        last_day = as_utc(user.last_activity).date()
        gap = (today - last_day).days
        if gap == 1:
            user.streak_count = (user.streak_count or 0) + 1
        elif gap > 1:
            user.streak_count = 1
        elif not user.streak_count:
            user.streak_count = 1
    user.last_activity = now


def submit_session_results(
    db: Session,
    user_id: str,
    results: list[tuple[str, int]],
    now: Optional[datetime] = None,
) -> dict:
    """Apply SM-2 to each (question_id, quality) pair and persist it.

    Items are written one SAVEPOINT at a time; an item that cannot be saved
    is logged and skipped without affecting the others.
    """
    for question_id, quality in results:
        if quality not in QUALITY_RANGE:
            raise ValueError(f"Quality for {question_id} must be 0-5, got {quality}")

    now = now or datetime.now(timezone.utc)
    question_ids = [qid for qid, _ in results]
    existing = load_progress_map(db, user_id, question_ids)
    known_ids = {
        r[0] for r in db.query(Question.id).filter(Question.id.in_(question_ids)).all()
    } if question_ids else set()

    scheduled = []
    for question_id, quality in results:
        if question_id not in known_ids:
            logger.warning("Skipping grade for unknown question %s", question_id)
            continue

        prev = existing.get(question_id)
        schedule = compute_schedule(
            quality,
            previous_interval=prev.interval if prev else DEFAULT_INTERVAL,
            previous_repetition=prev.repetition if prev else DEFAULT_REPETITION,
            previous_ef=prev.easiness_factor if prev else DEFAULT_EASINESS,
            now=now,
        )

        try:
            with db.begin_nested():
                record = prev
                if record is None:
                    record = UserProgress(user_id=user_id, question_id=question_id)
                    db.add(record)
                record.repetition = schedule.repetition
                record.interval = schedule.interval
                record.easiness_factor = schedule.easiness_factor
                record.next_review = schedule.next_review
        except SQLAlchemyError:
            logger.exception("Failed to save progress for question %s", question_id)
            continue

        existing[question_id] = record
        scheduled.append({"question_id": question_id, **schedule.to_dict()})

    _update_activity(db, user_id, now)
    db.commit()

    return {
        "saved": len(scheduled),
        "attempted": len(results),
        "scheduled": scheduled,
    }
