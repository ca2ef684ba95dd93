"""
Error taxonomy for malformed rule definitions.

Errors are reserved for broken *rules*. A candidate who simply does not meet
a requirement gets an ineligible verdict, never an exception.
"""

from typing import Iterable, List


class RuleDefinitionError(ValueError):
    """Base class: the course requirement tree cannot be evaluated."""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems) or self.__class__.__name__)


class StructuralInvariantViolation(RuleDefinitionError):
    """The tree breaks a structural invariant (bad counts, dangling basket ids, ...)."""


class ConflictingRule(RuleDefinitionError):
    """Two basket logic rules disagree about the same group of baskets."""
