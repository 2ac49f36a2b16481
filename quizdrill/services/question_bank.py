"""Interview question sets.

Each topic is a JSON file under settings.question_sets_dir holding a list of
{id, question, answer, options, type, level, explanation} items. The bank is
read once per directory and served as immutable QuestionRef tuples; the
questions table mirrors it so progress rows have something to reference.
"""

import json
import logging
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from quizdrill.config import settings
from quizdrill.models import Question

logger = logging.getLogger(__name__)

QUESTION_TYPES = ("QUIZ_SIMPLE", "TRUE_FALSE", "FILL_THE_BLANK")
LEVELS = ("Beginner", "Intermediate", "Advanced")

# topic key -> (file name, display category, fallback id prefix)
TOPIC_SETS = {
    "Database": ("database.json", "Database", "db"),
    "JavaScript": ("javascript.json", "JavaScript", "js"),
    "Python": ("python.json", "Python", "py"),
    "SystemsDesign": ("systemsdesign.json", "System Design", "sd"),
}


@dataclass(frozen=True)
class QuestionRef:
    id: str
    question: str
    answer: str
    options: tuple[str, ...]
    category: str
    topic: str
    type: str
    level: str
    explanation: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["options"] = list(self.options)
        return data


def _parse_item(raw: dict, index: int, topic: str, category: str, prefix: str) -> QuestionRef:
    qtype = raw.get("type")
    if qtype not in QUESTION_TYPES:
        raise ValueError(f"{topic} item {index}: unknown question type {qtype!r}")
    level = raw.get("level", "Beginner")
    if level not in LEVELS:
        raise ValueError(f"{topic} item {index}: unknown level {level!r}")
    return QuestionRef(
        id=raw.get("id") or f"{prefix}-{index}",
        question=raw["question"],
        answer=raw["answer"],
        options=tuple(raw.get("options") or ()),
        category=category,
        topic=topic,
        type=qtype,
        level=level,
        explanation=raw.get("explanation"),
    )


@lru_cache(maxsize=8)
def load_question_bank(sets_dir: Optional[Path] = None) -> dict[str, tuple[QuestionRef, ...]]:
    """Read every known topic set from disk. Missing files are skipped."""
    sets_dir = Path(sets_dir or settings.question_sets_dir)
    bank: dict[str, tuple[QuestionRef, ...]] = {}
    for topic, (filename, category, prefix) in TOPIC_SETS.items():
        path = sets_dir / filename
        if not path.exists():
            logger.warning("Question set %s missing at %s", topic, path)
            continue
        with open(path, encoding="utf-8") as f:
            items = json.load(f)
        bank[topic] = tuple(
            _parse_item(item, idx, topic, category, prefix)
            for idx, item in enumerate(items)
        )
    return bank


def get_available_topics(sets_dir: Optional[Path] = None) -> list[str]:
    return sorted(load_question_bank(sets_dir).keys(), key=str.lower)


def get_questions_by_topic(topic: str, sets_dir: Optional[Path] = None) -> list[QuestionRef]:
    """Return the topic's questions, or [] for an unknown topic."""
    return list(load_question_bank(sets_dir).get(topic, ()))


def get_all_questions(sets_dir: Optional[Path] = None) -> list[QuestionRef]:
    return [q for questions in load_question_bank(sets_dir).values() for q in questions]


def seed_questions(db: Session, questions: Optional[list[QuestionRef]] = None) -> int:
    """Mirror the bank into the questions table. Returns rows inserted or changed."""
    if questions is None:
        questions = get_all_questions()

    existing = {
        q.id: q for q in
        db.query(Question).filter(Question.id.in_([q.id for q in questions])).all()
    } if questions else {}

    written = 0
    for ref in questions:
        values = {
            "question": ref.question,
            "answer": ref.answer,
            "options_json": list(ref.options),
            "category": ref.category,
            "topic": ref.topic,
            "type": ref.type,
            "level": ref.level,
            "explanation": ref.explanation,
        }
        row = existing.get(ref.id)
        if row is None:
            db.add(Question(id=ref.id, **values))
            written += 1
            continue
        changed = False
        for key, value in values.items():
            if getattr(row, key) != value:
                setattr(row, key, value)
                changed = True
        if changed:
            written += 1

    db.commit()
    if written:
        logger.info("Seeded %d questions", written)
    return written
