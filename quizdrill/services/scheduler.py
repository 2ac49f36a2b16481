"""SuperMemo-2 review scheduling.

Turns a 0-5 quality grade plus the previous progress state of a question
into the next interval (days), repetition count and easiness factor:

- quality < 3: failed recall, the item restarts the ladder (rep 0, 1 day)
- quality >= 3: 1 day, then 6 days, then previous interval * EF
- EF is recomputed on every grade and never drops below 1.3
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

MIN_EASINESS = 1.3
DEFAULT_EASINESS = 2.5
DEFAULT_INTERVAL = 1
DEFAULT_REPETITION = 0
PASSING_QUALITY = 3
QUALITY_RANGE = range(0, 6)


@dataclass(frozen=True)
class ScheduleResult:
    interval: int
    repetition: int
    easiness_factor: float
    next_review: datetime

    def to_dict(self) -> dict:
        return {
            "interval": self.interval,
            "repetition": self.repetition,
            "easiness_factor": self.easiness_factor,
            "next_review": self.next_review.isoformat(),
        }


def adjust_easiness(previous_ef: float, quality: int) -> float:
    """Standard SM-2 ease curve, floored at MIN_EASINESS and rounded to 2 places."""
    miss = 5 - quality
    ef = max(MIN_EASINESS, previous_ef + (0.1 - miss * (0.08 + miss * 0.02)))
    return round(ef, 2)


def compute_schedule(
    quality: int,
    previous_interval: int = DEFAULT_INTERVAL,
    previous_repetition: int = DEFAULT_REPETITION,
    previous_ef: float = DEFAULT_EASINESS,
    now: Optional[datetime] = None,
) -> ScheduleResult:
    """Compute the next review state for one graded answer.

    quality must already be validated to 0..5 by the caller.
    """
    # never schedule from below the floor
    ef = max(MIN_EASINESS, previous_ef)

    if quality < PASSING_QUALITY:
        repetition = 0
        interval = 1
    else:
        repetition = previous_repetition + 1
        if repetition == 1:
            interval = 1
        elif repetition == 2:
            interval = 6
        else:
            # round half up
            interval = max(1, math.floor(previous_interval * ef + 0.5))

    if now is None:
        now = datetime.now(timezone.utc)

    return ScheduleResult(
        interval=interval,
        repetition=repetition,
        easiness_factor=adjust_easiness(ef, quality),
        next_review=now + timedelta(days=interval),
    )
