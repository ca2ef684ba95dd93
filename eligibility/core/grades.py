import logging
from enum import Enum
from typing import Optional, Tuple

from eligibility.config import GRADE_RANKS

logger = logging.getLogger(__name__)


class Grade(Enum):
    A = "A"
    B = "B"
    C = "C"
    S = "S"
    F = "F"

    @property
    def rank(self) -> int:
        return GRADE_RANKS[self.value]


# best -> worst
GRADES_ORDER = tuple(sorted(Grade, key=lambda g: g.rank, reverse=True))


def at_least(actual: Grade, required: Grade) -> bool:
    return actual.rank >= required.rank


def normalize_grade(raw) -> Optional[Grade]:
    """Return the Grade for a raw token like ' b ' or None if it is not on the scale."""
    if isinstance(raw, Grade):
        return raw
    if raw is None:
        return None
    token = str(raw).strip().upper()
    try:
        return Grade(token)
    except ValueError:
        return None


def parse_grade(raw) -> Tuple[Grade, bool]:
    """
    Candidate grades that are off the scale count as F rather than aborting,
    so a verdict can still be rendered. Returns (grade, on_scale).
    """
    g = normalize_grade(raw)
    if g is None:
        logger.warning("Grade %r is not on the scale; treating it as F", raw)
        return Grade.F, False
    return g, True


def require_grade(raw) -> Grade:
    """Strict variant for rule definitions: an unknown grade is a malformed rule."""
    g = normalize_grade(raw)
    if g is None:
        raise ValueError(f"Unknown grade {raw!r}; expected one of {[x.value for x in GRADES_ORDER]}")
    return g
