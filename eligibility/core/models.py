from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from eligibility.core.grades import Grade


@dataclass(frozen=True)
class SubjectRecord:
    subject_id: int
    level: str            # "OL" | "AL"
    grade: Grade
    on_scale: bool = True  # False when the raw grade was off the scale and became F


@dataclass(frozen=True)
class CandidateRecord:
    records: Tuple[SubjectRecord, ...] = ()
    stream_id: Optional[int] = None

    @classmethod
    def build(cls, records, stream_id: Optional[int] = None) -> "CandidateRecord":
        # one record per (subject, level); a repeated sitting keeps the better grade
        best: Dict[Tuple[int, str], SubjectRecord] = {}
        for r in records:
            key = (r.subject_id, r.level)
            current = best.get(key)
            if current is None or r.grade.rank > current.grade.rank:
                best[key] = r
        ordered = tuple(best[k] for k in sorted(best, key=lambda k: (k[1], k[0])))
        return cls(records=ordered, stream_id=stream_id)

    def at_level(self, level: str) -> Dict[int, SubjectRecord]:
        return {r.subject_id: r for r in self.records if r.level == level}

    def find(self, subject_id: int, level: str) -> Optional[SubjectRecord]:
        for r in self.records:
            if r.subject_id == subject_id and r.level == level:
                return r
        return None


@dataclass(frozen=True)
class GradeRequirement:
    grade: Grade
    count: int


@dataclass(frozen=True)
class SubjectSpecificGrade:
    subject_id: int
    min_grade: Grade


@dataclass(frozen=True)
class SubjectBasket:
    id: str
    name: str
    subject_ids: FrozenSet[int]
    min_required: int
    max_allowed: int
    internal_logic: str  # "AND" | "OR"
    grade_requirements: Tuple[GradeRequirement, ...] = ()
    subject_specific_grades: Tuple[SubjectSpecificGrade, ...] = ()


@dataclass(frozen=True)
class BasketLogicRule:
    id: str
    logic: str  # "AND" | "OR"
    primary_basket_id: str
    target_basket_ids: Tuple[str, ...]

    def basket_ids(self) -> FrozenSet[str]:
        return frozenset((self.primary_basket_id,) + tuple(self.target_basket_ids))


# ---------- O/L requirements (tagged union) ----------

@dataclass(frozen=True)
class PlainGradeRequirement:
    subject_id: int
    min_grade: Grade


@dataclass(frozen=True)
class CountRequirement:
    """N subjects at grade >= min_grade, e.g. six passes at S."""
    min_grade: Grade
    required_count: int


@dataclass(frozen=True)
class OrGroupRequirement:
    id: str
    subject_ids: FrozenSet[int]
    min_grade: Grade
    required_count: int = 1


OLRequirement = Union[PlainGradeRequirement, CountRequirement, OrGroupRequirement]


@dataclass(frozen=True)
class CourseRequirementTree:
    min_qualification_tier: str
    ol_requirements: Tuple[OLRequirement, ...] = ()
    baskets: Tuple[SubjectBasket, ...] = ()
    basket_logic_rules: Tuple[BasketLogicRule, ...] = ()
    streams: FrozenSet[int] = frozenset()

    def baskets_by_id(self) -> Dict[str, SubjectBasket]:
        return {b.id: b for b in self.baskets}


@dataclass(frozen=True)
class Course:
    id: str
    name: str
    university: str
    requirements: CourseRequirementTree


# ---------- results ----------

@dataclass(frozen=True)
class RuleResult:
    passed: bool
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BasketResult:
    basket_id: str
    passed: bool
    selected_subjects: Tuple[int, ...] = ()
    assignment: Tuple[Tuple[int, Grade], ...] = ()  # (subject_id, grade bucket it filled)
    reasons: Tuple[str, ...] = ()
    optional: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "basketId": self.basket_id,
            "passed": self.passed,
            "optional": self.optional,
            "selectedSubjects": list(self.selected_subjects),
            "assignment": [{"subjectId": sid, "grade": g.value} for sid, g in self.assignment],
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class StageOutcome:
    stage: str
    status: str  # passed | failed | not_applicable | skipped
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EligibilityVerdict:
    eligible: bool
    satisfied_baskets: FrozenSet[str]
    failed_baskets: FrozenSet[str]
    ol_satisfied: bool
    reasons: Tuple[str, ...]
    trace: Tuple[StageOutcome, ...] = ()
    basket_results: Tuple[BasketResult, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eligible": self.eligible,
            "satisfiedBaskets": sorted(self.satisfied_baskets),
            "failedBaskets": sorted(self.failed_baskets),
            "olSatisfied": self.ol_satisfied,
            "reasons": list(self.reasons),
            "trace": [
                {"stage": s.stage, "status": s.status, "reasons": list(s.reasons)}
                for s in self.trace
            ],
            "basketResults": [b.to_dict() for b in self.basket_results],
        }


@dataclass
class CourseEligibility:
    course: Course
    verdict: Optional[EligibilityVerdict]
    errors: List[str] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return self.verdict is not None and self.verdict.eligible
