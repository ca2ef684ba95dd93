import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Protocol, Tuple

from eligibility.config import AL, OL, STREAM_COMBINATIONS
from eligibility.core.grades import Grade, at_least
from eligibility.core.models import (
    BasketResult,
    CandidateRecord,
    CountRequirement,
    GradeRequirement,
    OLRequirement,
    OrGroupRequirement,
    PlainGradeRequirement,
    RuleResult,
    SubjectBasket,
)

logger = logging.getLogger(__name__)


class CandidateRule(Protocol):
    def evaluate(self, candidate: CandidateRecord) -> RuleResult: ...


# ---------- O/L ----------

class OLSubjectGradeRule:
    def __init__(self, subject_id: int, min_grade: Grade):
        self.subject_id = subject_id
        self.min_grade = min_grade

    def evaluate(self, candidate: CandidateRecord) -> RuleResult:
        r = candidate.find(self.subject_id, OL)
        if r is None:
            return RuleResult(False, (f"ol:subject:{self.subject_id}:missing",))
        if not at_least(r.grade, self.min_grade):
            return RuleResult(False, (f"ol:subject:{self.subject_id}:below_min_grade",))
        return RuleResult(True)


class OLCountRule:
    """Ranks are cumulative: an A counts towards a 'six at S' rule and a 'two at C' rule alike."""

    def __init__(self, min_grade: Grade, required_count: int):
        self.min_grade = min_grade
        self.required_count = int(required_count)

    def evaluate(self, candidate: CandidateRecord) -> RuleResult:
        have = sum(1 for r in candidate.at_level(OL).values() if at_least(r.grade, self.min_grade))
        if have < self.required_count:
            return RuleResult(False, (f"ol:count:{self.min_grade.value}:unmet:{have}/{self.required_count}",))
        return RuleResult(True)


class OLOrGroupRule:
    def __init__(self, group_id: str, subject_ids: FrozenSet[int], min_grade: Grade, required_count: int = 1):
        self.group_id = group_id
        self.subject_ids = frozenset(subject_ids)
        self.min_grade = min_grade
        self.required_count = int(required_count)

    def evaluate(self, candidate: CandidateRecord) -> RuleResult:
        ol = candidate.at_level(OL)
        have = sum(
            1 for sid in self.subject_ids
            if sid in ol and at_least(ol[sid].grade, self.min_grade)
        )
        if have < self.required_count:
            return RuleResult(False, (f"ol:group:{self.group_id}:unmet",))
        return RuleResult(True)


def ol_rule_for(req: OLRequirement) -> CandidateRule:
    if isinstance(req, PlainGradeRequirement):
        return OLSubjectGradeRule(req.subject_id, req.min_grade)
    if isinstance(req, CountRequirement):
        return OLCountRule(req.min_grade, req.required_count)
    if isinstance(req, OrGroupRequirement):
        return OLOrGroupRule(req.id, req.subject_ids, req.min_grade, req.required_count)
    raise TypeError(f"Unknown O/L requirement: {req!r}")


class AndRule:
    """Every rule is evaluated, even after a failure, so the reasons are complete."""

    def __init__(self, *rules):
        self.rules = list(rules)

    def evaluate(self, candidate: CandidateRecord) -> RuleResult:
        passed = True
        reasons: List[str] = []
        for r in self.rules:
            rr = r.evaluate(candidate)
            reasons.extend(rr.reasons)
            if not rr.passed:
                passed = False
        return RuleResult(passed, tuple(reasons))


# ---------- A/L ----------

class GeneralALPassRule:
    """Fallback for courses that ask for A/L evidence but define no baskets."""

    def __init__(self, required_count: int, min_grade: Grade):
        self.required_count = int(required_count)
        self.min_grade = min_grade

    def evaluate(self, candidate: CandidateRecord) -> RuleResult:
        have = sum(1 for r in candidate.at_level(AL).values() if at_least(r.grade, self.min_grade))
        if have < self.required_count:
            return RuleResult(False, ("al:general_pass_unmet",))
        return RuleResult(True)


def resolve_stream(candidate: CandidateRecord) -> Optional[int]:
    """Stream implied by the A/L subject combination, else the one the candidate chose."""
    taken = frozenset(candidate.at_level(AL))
    derived = STREAM_COMBINATIONS.get(taken)
    if derived is not None:
        return derived
    return candidate.stream_id


class StreamRule:
    def __init__(self, allowed_streams: Iterable[int]):
        self.allowed_streams = frozenset(allowed_streams)

    def evaluate(self, candidate: CandidateRecord) -> RuleResult:
        if not self.allowed_streams:
            return RuleResult(True)
        stream = resolve_stream(candidate)
        if stream is None:
            # nothing to go on, so the course stays open
            logger.debug("no stream for candidate, allowed streams not enforced")
            return RuleResult(True)
        if stream not in self.allowed_streams:
            return RuleResult(False, ("al:stream_not_allowed",))
        return RuleResult(True)


def assign_grade_buckets(
    pool: Dict[int, Grade], requirements: Iterable[GradeRequirement]
) -> Tuple[Tuple[Tuple[int, Grade], ...], List[GradeRequirement]]:
    """
    Greedy bucket assignment, highest grade bucket first. A subject that meets
    a higher grade also meets every lower one, so filling the strict buckets
    first never starves a looser one. Within a bucket the weakest qualifying
    subjects go first (ties by subject id) to keep the result deterministic.

    Returns (assignment, unmet buckets).
    """
    remaining = dict(pool)
    assignment: List[Tuple[int, Grade]] = []
    unmet: List[GradeRequirement] = []
    for req in sorted(requirements, key=lambda r: r.grade.rank, reverse=True):
        if req.count <= 0:
            continue
        qualifying = sorted(
            (sid for sid, g in remaining.items() if at_least(g, req.grade)),
            key=lambda sid: (remaining[sid].rank, sid),
        )
        taken = qualifying[:req.count]
        for sid in taken:
            assignment.append((sid, req.grade))
            del remaining[sid]
        if len(taken) < req.count:
            unmet.append(req)
    return tuple(assignment), unmet


def best_subjects(pool: Dict[int, Grade], limit: int) -> Dict[int, Grade]:
    """
    At most `limit` subjects, best grades first, ties by subject id. Any grade
    count met by some subset of that size is met by this one.
    """
    chosen = sorted(pool, key=lambda sid: (-pool[sid].rank, sid))[:max(limit, 0)]
    return {sid: pool[sid] for sid in chosen}


class BasketRule:
    def __init__(self, basket: SubjectBasket):
        self.basket = basket

    def evaluate(self, candidate: CandidateRecord) -> BasketResult:
        b = self.basket
        prefix = f"basket:{b.id}"

        if not b.subject_ids:
            return BasketResult(b.id, False, reasons=(f"{prefix}:empty_subject_set",))
        if b.min_required == 0:
            return BasketResult(b.id, True, optional=True)

        al = candidate.at_level(AL)
        pool: Dict[int, Grade] = {sid: al[sid].grade for sid in b.subject_ids if sid in al}

        reasons: List[str] = []
        for ssg in sorted(b.subject_specific_grades, key=lambda s: s.subject_id):
            g = pool.get(ssg.subject_id)
            if g is not None and not at_least(g, ssg.min_grade):
                del pool[ssg.subject_id]
                reasons.append(f"{prefix}:subject:{ssg.subject_id}:below_min_grade")

        passed = True
        if b.internal_logic == "AND":
            if b.subject_ids - pool.keys():
                passed = False
                reasons.append(f"{prefix}:missing_subjects")
        else:
            if len(pool) < b.min_required:
                passed = False
                reasons.append(f"{prefix}:too_few_subjects")
            pool = best_subjects(pool, b.max_allowed)

        assignment, unmet = assign_grade_buckets(pool, b.grade_requirements)
        for req in unmet:
            passed = False
            reasons.append(f"{prefix}:grade_count_unmet:{req.grade.value}")

        logger.debug("basket %s: pool=%s passed=%s", b.id, sorted(pool), passed)
        return BasketResult(
            basket_id=b.id,
            passed=passed,
            selected_subjects=tuple(sorted(pool)),
            assignment=assignment,
            # a discarded subject is not a failure when the basket still passes
            reasons=() if passed else tuple(reasons),
        )
