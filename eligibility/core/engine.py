import logging
from typing import List, Optional, Tuple

from eligibility.config import AL, GENERAL_AL_PASS_COUNT, GENERAL_AL_PASS_GRADE, OL, TIER_EVIDENCE
from eligibility.core.combinator import LogicCombinator
from eligibility.core.errors import RuleDefinitionError
from eligibility.core.grades import Grade
from eligibility.core.models import (
    BasketResult,
    CandidateRecord,
    CourseEligibility,
    CourseRequirementTree,
    EligibilityVerdict,
    StageOutcome,
)
from eligibility.core.repositories import CourseRepository
from eligibility.core.rules import AndRule, BasketRule, GeneralALPassRule, StreamRule, ol_rule_for
from eligibility.core.validation import validate

logger = logging.getLogger(__name__)

# pipeline stages, in order
TIER_CHECK = "QualificationTierCheck"
OL_CHECK = "OLRequirementCheck"
BASKET_EVALUATION = "BasketEvaluation"
LOGIC_COMBINATION = "LogicCombination"
VERDICT_ASSEMBLY = "VerdictAssembly"

PASSED = "passed"
FAILED = "failed"
NOT_APPLICABLE = "not_applicable"
SKIPPED = "skipped"


def _status(ok: bool) -> str:
    return PASSED if ok else FAILED


def _off_scale_reasons(candidate: CandidateRecord, level: str) -> Tuple[str, ...]:
    return tuple(
        f"record:{r.level}:{r.subject_id}:grade_not_on_scale"
        for r in candidate.records
        if r.level == level and not r.on_scale
    )


class EligibilityEngine:
    """
    Runs one candidate through a course's requirement tree:

        QualificationTierCheck -> OLRequirementCheck -> BasketEvaluation
            -> LogicCombination -> VerdictAssembly

    Only a "noNeed" tier short-circuits. Every other stage runs even after an
    earlier one failed, so the verdict lists every unmet requirement.
    Malformed trees raise RuleDefinitionError instead of producing a verdict.
    """

    def __init__(self, repo: Optional[CourseRepository] = None):
        self.repo = repo

    def evaluate(self, tree: CourseRequirementTree, candidate: CandidateRecord) -> EligibilityVerdict:
        if tree.min_qualification_tier == "noNeed":
            return EligibilityVerdict(
                eligible=True,
                satisfied_baskets=frozenset(),
                failed_baskets=frozenset(),
                ol_satisfied=True,
                reasons=("tier:no_need",),
                trace=(
                    StageOutcome(TIER_CHECK, PASSED, ("tier:no_need",)),
                    StageOutcome(OL_CHECK, SKIPPED),
                    StageOutcome(BASKET_EVALUATION, SKIPPED),
                    StageOutcome(LOGIC_COMBINATION, SKIPPED),
                    StageOutcome(VERDICT_ASSEMBLY, PASSED),
                ),
            )

        validate(tree)
        evidence = TIER_EVIDENCE[tree.min_qualification_tier]
        trace: List[StageOutcome] = [StageOutcome(TIER_CHECK, PASSED)]

        # O/L
        if OL in evidence:
            rr = AndRule(*[ol_rule_for(r) for r in tree.ol_requirements]).evaluate(candidate)
            ol_ok = rr.passed
            trace.append(StageOutcome(OL_CHECK, _status(ol_ok), _off_scale_reasons(candidate, OL) + rr.reasons))
        else:
            ol_ok = True
            trace.append(StageOutcome(OL_CHECK, NOT_APPLICABLE, ("ol:not_applicable",)))

        # A/L
        basket_results: Tuple[BasketResult, ...] = ()
        if AL in evidence:
            al_ok, basket_results = self._evaluate_al(tree, candidate, trace)
        else:
            al_ok = True
            trace.append(StageOutcome(BASKET_EVALUATION, NOT_APPLICABLE, ("al:not_applicable",)))
            trace.append(StageOutcome(LOGIC_COMBINATION, NOT_APPLICABLE))

        eligible = ol_ok and al_ok
        trace.append(StageOutcome(VERDICT_ASSEMBLY, _status(eligible)))

        reasons: List[str] = []
        for stage in trace:
            reasons.extend(stage.reasons)

        logger.debug("tier=%s eligible=%s reasons=%s", tree.min_qualification_tier, eligible, reasons)
        return EligibilityVerdict(
            eligible=eligible,
            satisfied_baskets=frozenset(b.basket_id for b in basket_results if b.passed),
            failed_baskets=frozenset(b.basket_id for b in basket_results if not b.passed),
            ol_satisfied=ol_ok,
            reasons=tuple(reasons),
            trace=tuple(trace),
            basket_results=basket_results,
        )

    def _evaluate_al(
        self, tree: CourseRequirementTree, candidate: CandidateRecord, trace: List[StageOutcome]
    ) -> Tuple[bool, Tuple[BasketResult, ...]]:
        stream = StreamRule(tree.streams).evaluate(candidate)
        stage_reasons = _off_scale_reasons(candidate, AL) + stream.reasons

        if not tree.baskets:
            general = GeneralALPassRule(GENERAL_AL_PASS_COUNT, Grade(GENERAL_AL_PASS_GRADE)).evaluate(candidate)
            ok = stream.passed and general.passed
            trace.append(StageOutcome(BASKET_EVALUATION, _status(ok), stage_reasons + general.reasons))
            trace.append(StageOutcome(LOGIC_COMBINATION, SKIPPED))
            return ok, ()

        results = tuple(BasketRule(b).evaluate(candidate) for b in tree.baskets)
        for r in results:
            stage_reasons += r.reasons
        trace.append(StageOutcome(
            BASKET_EVALUATION,
            _status(stream.passed and all(r.passed for r in results)),
            stage_reasons,
        ))

        combination = LogicCombinator(tree.basket_logic_rules).combine({r.basket_id: r.passed for r in results})
        trace.append(StageOutcome(LOGIC_COMBINATION, _status(combination.passed), combination.reasons))
        return stream.passed and combination.passed, results

    def evaluate_candidate(self, candidate: CandidateRecord) -> List[CourseEligibility]:
        """Match one candidate against every course in the repository."""
        if self.repo is None:
            raise ValueError("EligibilityEngine was created without a course repository")

        results: List[CourseEligibility] = []
        for course in self.repo.list_courses():
            try:
                verdict = self.evaluate(course.requirements, candidate)
            except RuleDefinitionError as e:
                logger.error("Course %s has malformed entry rules: %s", course.id, e)
                results.append(CourseEligibility(course=course, verdict=None, errors=e.problems))
                continue
            results.append(CourseEligibility(course=course, verdict=verdict))
        return results


def evaluate(tree: CourseRequirementTree, candidate: CandidateRecord) -> EligibilityVerdict:
    return EligibilityEngine().evaluate(tree, candidate)
