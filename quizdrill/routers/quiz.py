import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from quizdrill.database import get_db
from quizdrill.schemas import (
    QuestionSessionOut,
    SessionSubmitIn,
    SessionSubmitOut,
    TopicOut,
)
from quizdrill.services.interaction_logger import SESSION_START, SESSION_SUBMIT, log_interaction
from quizdrill.services.progress_service import (
    UnknownTopicError,
    build_question_session,
    submit_session_results,
)
from quizdrill.services.question_bank import get_available_topics, get_questions_by_topic
from quizdrill.services.session_composer import (
    REMIX_TOPIC,
    parse_count,
    parse_topics,
    parse_type_filter,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Identity is resolved upstream and forwarded as X-User-Id."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized.")
    return x_user_id


@router.get("/topics", response_model=list[TopicOut])
def list_topics():
    return [
        {"topic": topic, "question_count": len(get_questions_by_topic(topic))}
        for topic in get_available_topics()
    ]


@router.get("/questions/{topic}", response_model=QuestionSessionOut)
def session_questions(
    topic: str,
    count: Optional[str] = Query(None),
    type_: Optional[str] = Query(None, alias="type"),
    topics: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Questions for one practice session, most urgent first."""
    requested = parse_count(count)
    type_filter = parse_type_filter(type_)
    topic_filter = parse_topics(topics) if topic == REMIX_TOPIC else None

    try:
        result = build_question_session(
            db,
            user_id,
            topic,
            count=requested,
            type_filter=type_filter,
            topics=topic_filter,
        )
    except UnknownTopicError:
        raise HTTPException(status_code=400, detail="Unknown topic.")

    log_interaction(
        event=SESSION_START,
        user_id=user_id,
        topic=topic,
        type_filter=type_filter,
        requested=result["requested"],
        served=len(result["questions"]),
        available=result["available"],
        **result["buckets"],
    )
    return result


@router.post("/session", response_model=SessionSubmitOut)
def submit_session(
    body: SessionSubmitIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Grade a finished session and reschedule every answered question."""
    result = submit_session_results(
        db, user_id, [(item.question_id, item.quality) for item in body.results]
    )
    if result["saved"] < result["attempted"]:
        logger.info(
            "Session for %s saved %d of %d results",
            user_id, result["saved"], result["attempted"],
        )

    log_interaction(
        event=SESSION_SUBMIT,
        user_id=user_id,
        saved=result["saved"],
        attempted=result["attempted"],
    )
    return result
