from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, StrictInt

from quizdrill.config import settings


class QuestionOut(BaseModel):
    id: str
    question: str
    answer: str
    options: list[str] = []
    category: str
    topic: str
    type: str
    level: str
    explanation: Optional[str] = None


class QuestionSessionOut(BaseModel):
    questions: list[QuestionOut]
    requested: int
    available: int
    buckets: dict[str, int] = {}


class TopicOut(BaseModel):
    topic: str
    question_count: int


class GradedAnswerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(alias="questionId", min_length=1)
    # strict: "3" or 3.0 are rejected rather than coerced
    quality: StrictInt = Field(ge=0, le=5)


class SessionSubmitIn(BaseModel):
    results: list[GradedAnswerIn] = Field(
        min_length=1, max_length=settings.max_results_per_submission
    )


class ScheduledItemOut(BaseModel):
    question_id: str
    interval: int
    repetition: int
    easiness_factor: float
    next_review: datetime


class SessionSubmitOut(BaseModel):
    saved: int
    attempted: int
    scheduled: list[ScheduledItemOut]


class SignInIn(BaseModel):
    username: str = ""
    password: str = ""


class SignInOut(BaseModel):
    user_id: str
    username: str


class RegisterIn(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class AvailabilityOut(BaseModel):
    available: Optional[bool] = None
