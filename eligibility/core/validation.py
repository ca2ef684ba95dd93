import logging
from typing import List

from eligibility.config import TIERS
from eligibility.core.combinator import find_conflicts
from eligibility.core.errors import ConflictingRule, StructuralInvariantViolation
from eligibility.core.models import (
    CountRequirement,
    CourseRequirementTree,
    OrGroupRequirement,
    SubjectBasket,
)

logger = logging.getLogger(__name__)

LOGICS = ("AND", "OR")


def _basket_problems(b: SubjectBasket) -> List[str]:
    problems: List[str] = []
    where = f"basket {b.id!r}"
    if b.internal_logic not in LOGICS:
        problems.append(f"{where}: internal logic {b.internal_logic!r} is not AND/OR")
    if b.min_required < 0:
        problems.append(f"{where}: minRequired {b.min_required} < 0")
    if b.min_required > b.max_allowed:
        problems.append(f"{where}: minRequired {b.min_required} > maxAllowed {b.max_allowed}")
    if b.max_allowed > len(b.subject_ids):
        problems.append(f"{where}: maxAllowed {b.max_allowed} > {len(b.subject_ids)} subjects")

    stray = sorted({s.subject_id for s in b.subject_specific_grades} - set(b.subject_ids))
    if stray:
        problems.append(f"{where}: subject-specific grades for subjects outside the basket {stray}")

    total = 0
    for req in b.grade_requirements:
        if req.count < 0:
            problems.append(f"{where}: negative count for grade {req.grade.value}")
        total += max(req.count, 0)
    if total > b.max_allowed:
        problems.append(f"{where}: grade requirement counts {total} exceed maxAllowed {b.max_allowed}")
    return problems


def validate(tree: CourseRequirementTree) -> CourseRequirementTree:
    """
    Check every structural invariant of the tree and return it unchanged.

    Raises StructuralInvariantViolation listing every problem found, or
    ConflictingRule when the logic rules disagree about the same baskets.
    """
    problems: List[str] = []

    if tree.min_qualification_tier not in TIERS:
        problems.append(f"unknown qualification tier {tree.min_qualification_tier!r}")

    seen = set()
    for b in tree.baskets:
        if b.id in seen:
            problems.append(f"duplicate basket id {b.id!r}")
        seen.add(b.id)
        problems.extend(_basket_problems(b))

    rule_ids = set()
    for rule in tree.basket_logic_rules:
        where = f"rule {rule.id!r}"
        if rule.id in rule_ids:
            problems.append(f"duplicate rule id {rule.id!r}")
        rule_ids.add(rule.id)
        if rule.logic not in LOGICS:
            problems.append(f"{where}: logic {rule.logic!r} is not AND/OR")
        dangling = sorted(rule.basket_ids() - seen)
        if dangling:
            problems.append(f"{where}: unknown baskets {dangling}")
        if len(rule.basket_ids()) < 2:
            problems.append(f"{where}: must reference at least 2 distinct baskets")

    for i, req in enumerate(tree.ol_requirements):
        if isinstance(req, OrGroupRequirement):
            if not req.subject_ids:
                problems.append(f"O/L group {req.id!r}: no subjects")
            elif not 1 <= req.required_count <= len(req.subject_ids):
                problems.append(
                    f"O/L group {req.id!r}: requiredCount {req.required_count} "
                    f"outside 1..{len(req.subject_ids)}"
                )
        elif isinstance(req, CountRequirement) and req.required_count < 0:
            problems.append(f"O/L requirement #{i}: requiredCount {req.required_count} < 0")

    if problems:
        logger.error("Rejected requirement tree: %s", "; ".join(problems))
        raise StructuralInvariantViolation(problems)

    conflicts = find_conflicts(tree.basket_logic_rules)
    if conflicts:
        logger.error("Conflicting basket logic rules: %s", "; ".join(conflicts))
        raise ConflictingRule(conflicts)

    return tree
