"""
Configuration constants for the eligibility engine.

Grade ranks, qualification tiers and the general A/L pass rule live here so
the evaluators never hard-code policy values.
"""

import os
from pathlib import Path

# =============================================================================
# FILE PATHS
# =============================================================================

BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.environ.get("ELIGIBILITY_DATA_DIR", BASE_DIR / "data"))

LOG_LEVEL = os.environ.get("ELIGIBILITY_LOG_LEVEL", "WARNING").upper()


# =============================================================================
# GRADE SCALE
# =============================================================================
# Same letters at O/L and A/L. F is the failing grade and the fallback for
# values that are not on the scale.

GRADE_RANKS = {
    "A": 4,
    "B": 3,
    "C": 2,
    "S": 1,
    "F": 0,
}


# =============================================================================
# QUALIFICATION TIERS
# =============================================================================

OL = "OL"
AL = "AL"
LEVELS = (OL, AL)

TIERS = (
    "noNeed",
    "OLPass",
    "ALPass",
    "Foundation",
    "Diploma",
    "HND",
    "Graduate",
)

# Which examination evidence each tier asks for. A stage whose level is not
# listed is reported as not applicable.
TIER_EVIDENCE = {
    "noNeed": frozenset(),
    "OLPass": frozenset({OL}),
    "ALPass": frozenset({OL, AL}),
    "Foundation": frozenset({OL}),
    "Diploma": frozenset({OL, AL}),
    "HND": frozenset({OL, AL}),
    "Graduate": frozenset(),
}


# =============================================================================
# GENERAL A/L PASS
# =============================================================================
# Courses that ask for A/L evidence but define no baskets fall back to
# "pass any three subjects".

GENERAL_AL_PASS_COUNT = 3
GENERAL_AL_PASS_GRADE = "S"


# =============================================================================
# A/L STREAMS
# =============================================================================
# A candidate whose A/L subjects are exactly one of these combinations is
# placed in that stream. An explicitly chosen stream is used only when the
# subjects do not identify one.

PHYSICAL_SCIENCE_STREAM = 4
BIOLOGICAL_SCIENCE_STREAM = 3
ARTS_STREAM = 1

STREAM_COMBINATIONS = {
    # Physics, Chemistry, Mathematics / Combined Mathematics / Higher Mathematics
    frozenset({1, 2, 3}): PHYSICAL_SCIENCE_STREAM,
    frozenset({1, 2, 6}): PHYSICAL_SCIENCE_STREAM,
    frozenset({1, 2, 7}): PHYSICAL_SCIENCE_STREAM,
    frozenset({1, 3, 6}): PHYSICAL_SCIENCE_STREAM,
    frozenset({1, 3, 7}): PHYSICAL_SCIENCE_STREAM,
    frozenset({2, 3, 6}): PHYSICAL_SCIENCE_STREAM,
    frozenset({2, 3, 7}): PHYSICAL_SCIENCE_STREAM,
    # Biology is the marker
    frozenset({1, 2, 5}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({2, 4, 5}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({4, 5, 6}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({1, 4, 5}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({2, 5, 6}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({1, 5, 6}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({3, 4, 5}): BIOLOGICAL_SCIENCE_STREAM,
    frozenset({3, 5, 6}): BIOLOGICAL_SCIENCE_STREAM,
    # Arts, languages, commerce and general subjects
    frozenset({38, 50, 52}): ARTS_STREAM,
    frozenset({38, 50, 51}): ARTS_STREAM,
    frozenset({38, 51, 52}): ARTS_STREAM,
    frozenset({17, 18, 21}): ARTS_STREAM,
    frozenset({17, 18, 22}): ARTS_STREAM,
    frozenset({17, 18, 23}): ARTS_STREAM,
    frozenset({26, 27, 28}): ARTS_STREAM,
    frozenset({8, 9, 10}): ARTS_STREAM,
    frozenset({3, 8, 9}): ARTS_STREAM,
    frozenset({6, 8, 9}): ARTS_STREAM,
}
