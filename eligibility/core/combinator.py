from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple

from eligibility.core.models import BasketLogicRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CombinationResult:
    passed: bool
    rule_results: Tuple[Tuple[str, bool], ...]  # (rule id, verdict) in declaration order
    uncovered_failed: Tuple[str, ...]           # baskets outside every rule that failed alone
    reasons: Tuple[str, ...] = ()


def find_conflicts(rules: Iterable[BasketLogicRule]) -> List[str]:
    """
    Two rules over exactly the same baskets, one AND and one OR, ask for
    different things of the same group. Those are reported, never resolved.
    """
    by_group: Dict[FrozenSet[str], List[BasketLogicRule]] = {}
    for rule in rules:
        by_group.setdefault(rule.basket_ids(), []).append(rule)

    problems: List[str] = []
    for group, members in by_group.items():
        logics = {r.logic for r in members}
        if len(logics) > 1:
            ids = ", ".join(r.id for r in members)
            problems.append(
                f"rules {ids} combine baskets {sorted(group)} with conflicting logic {sorted(logics)}"
            )
    return problems


class LogicCombinator:
    """
    Course-level A/L verdict from standalone basket verdicts.

    A basket that takes part in several rules contributes the conjunction of
    all of them, which falls out of requiring every rule to pass.
    """

    def __init__(self, rules: Iterable[BasketLogicRule]):
        self.rules = tuple(rules)

    def combine(self, standalone: Mapping[str, bool]) -> CombinationResult:
        covered = set()
        rule_results: List[Tuple[str, bool]] = []
        reasons: List[str] = []

        for rule in self.rules:
            verdicts = [standalone[rule.primary_basket_id]] + [standalone[t] for t in rule.target_basket_ids]
            if rule.logic == "AND":
                ok = all(verdicts)
            else:
                ok = any(verdicts)
            rule_results.append((rule.id, ok))
            covered.update(rule.basket_ids())
            if not ok:
                reasons.append(f"rule:{rule.id}:unmet")
            logger.debug("rule %s (%s) -> %s", rule.id, rule.logic, ok)

        uncovered_failed = tuple(
            bid for bid in sorted(standalone) if bid not in covered and not standalone[bid]
        )
        reasons.extend(f"basket:{bid}:unmet_standalone" for bid in uncovered_failed)
        passed = not uncovered_failed and all(ok for _, ok in rule_results)
        return CombinationResult(
            passed=passed,
            rule_results=tuple(rule_results),
            uncovered_failed=uncovered_failed,
            reasons=tuple(reasons),
        )
