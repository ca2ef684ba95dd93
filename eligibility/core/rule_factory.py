import logging
from typing import Any, Dict, List, Optional, Tuple

from eligibility.config import LEVELS
from eligibility.core.errors import RuleDefinitionError, StructuralInvariantViolation
from eligibility.core.grades import parse_grade, require_grade
from eligibility.core.models import (
    BasketLogicRule,
    CandidateRecord,
    CountRequirement,
    Course,
    CourseRequirementTree,
    GradeRequirement,
    OLRequirement,
    OrGroupRequirement,
    PlainGradeRequirement,
    SubjectBasket,
    SubjectRecord,
    SubjectSpecificGrade,
)
from eligibility.schemas import (
    BasketInput,
    CandidateInput,
    CourseInput,
    CourseRequirementInput,
    OLRequirementInput,
)

logger = logging.getLogger(__name__)


def normalize_level(raw: str) -> str:
    level = (raw or "").replace("/", "").replace(" ", "").upper()
    if level not in LEVELS:
        raise ValueError(f"Unknown qualification level {raw!r}; expected OL or AL")
    return level


class RuleFactory:
    """
    Build immutable requirement trees and candidate records from JSON documents.
    Accepts the current admin-portal shapes as well as the older ones
    (selectedBaskets rules, basketRelationships, single gradeRequirement,
    O/L entries with a required flag).

    The factory only converts; invariants are checked by validation.validate.
    """

    def tree_from_json(self, data: Dict[str, Any]) -> CourseRequirementTree:
        try:
            parsed = CourseRequirementInput.model_validate(data)
            return self._tree(parsed)
        except RuleDefinitionError:
            raise
        except ValueError as e:
            raise StructuralInvariantViolation([str(e)]) from e

    def course_from_json(self, data: Dict[str, Any]) -> Course:
        try:
            parsed = CourseInput.model_validate(data)
            tree = self._tree(parsed.requirements)
        except ValueError as e:
            course_id = data.get("id") if isinstance(data, dict) else None
            raise StructuralInvariantViolation([f"course {course_id!r}: {e}"]) from e
        return Course(
            id=str(parsed.id),
            name=parsed.name,
            university=parsed.university,
            requirements=tree,
        )

    def candidate_from_json(self, data: Any) -> CandidateRecord:
        if isinstance(data, list):
            data = {"records": data}
        parsed = CandidateInput.model_validate(data)
        records: List[SubjectRecord] = []
        for r in parsed.records:
            grade, on_scale = parse_grade(r.grade)
            records.append(SubjectRecord(r.subject_id, normalize_level(r.level), grade, on_scale))
        return CandidateRecord.build(records, stream_id=parsed.stream_id)

    # ---------- conversion ----------

    def _tree(self, parsed: CourseRequirementInput) -> CourseRequirementTree:
        ol: List[OLRequirement] = []
        for i, r in enumerate(parsed.ol_requirements):
            if not r.required:
                continue
            ol.append(self._ol_requirement(i, r))
        return CourseRequirementTree(
            min_qualification_tier=parsed.min_qualification_tier.strip(),
            ol_requirements=tuple(ol),
            baskets=tuple(self._basket(b) for b in parsed.baskets),
            basket_logic_rules=self._logic_rules(parsed),
            streams=frozenset(parsed.streams),
        )

    def _basket(self, b: BasketInput) -> SubjectBasket:
        grade_reqs = tuple(GradeRequirement(require_grade(g.grade), g.count) for g in b.grade_requirements)
        if not grade_reqs and b.grade_requirement and b.min_required > 0:
            grade_reqs = (GradeRequirement(require_grade(b.grade_requirement), b.min_required),)

        subject_ids = frozenset(b.subject_ids)
        return SubjectBasket(
            id=str(b.id),
            name=b.name or str(b.id),
            subject_ids=subject_ids,
            min_required=b.min_required,
            max_allowed=b.max_allowed if b.max_allowed is not None else len(subject_ids),
            internal_logic=b.internal_logic.strip().upper(),
            grade_requirements=grade_reqs,
            subject_specific_grades=tuple(
                SubjectSpecificGrade(s.subject_id, require_grade(s.min_grade))
                for s in b.subject_specific_grades
            ),
        )

    def _logic_rules(self, parsed: CourseRequirementInput) -> Tuple[BasketLogicRule, ...]:
        raw: List[Tuple[Optional[str], str, str, List[str]]] = []
        for r in parsed.basket_logic_rules:
            if r.primary_basket_id is None and r.selected_baskets is not None:
                # UI shape: first selected basket is the primary
                selected = list(r.selected_baskets)
                primary, targets = (selected[0], selected[1:]) if selected else ("", [])
            else:
                primary, targets = r.primary_basket_id or "", list(r.target_basket_ids)
            raw.append((None if r.id is None else str(r.id), r.logic, primary, targets))
        for rel in parsed.basket_relationships:
            raw.append((None, rel.relationship, rel.basket1, [rel.basket2]))

        rules: List[BasketLogicRule] = []
        for i, (rule_id, logic, primary, targets) in enumerate(raw):
            rules.append(BasketLogicRule(
                id=rule_id if rule_id is not None else f"rule_{i}",
                logic=logic.strip().upper(),
                primary_basket_id=primary,
                target_basket_ids=tuple(dict.fromkeys(targets)),
            ))
        return tuple(rules)

    def _ol_requirement(self, index: int, r: OLRequirementInput) -> OLRequirement:
        kind = (r.type or "").strip().lower()
        if not kind:
            if r.subject_ids is not None:
                kind = "or_group"
            elif r.subject_id is not None:
                kind = "plain"
            else:
                kind = "count"

        grade = require_grade(r.min_grade)
        if kind in ("or_group", "group"):
            return OrGroupRequirement(
                id=str(r.id) if r.id is not None else f"group_{index}",
                subject_ids=frozenset(r.subject_ids or ()),
                min_grade=grade,
                required_count=r.required_count if r.required_count is not None else 1,
            )
        if kind in ("plain", "subject"):
            if r.subject_id is None:
                raise ValueError(f"O/L requirement #{index}: subjectId is required")
            return PlainGradeRequirement(r.subject_id, grade)
        if kind == "count":
            if r.required_count is None:
                raise ValueError(f"O/L requirement #{index}: requiredCount is required")
            return CountRequirement(grade, r.required_count)

        raise ValueError(f"O/L requirement #{index}: unknown type {r.type!r}")
