from eligibility.core.grades import Grade
from eligibility.core.models import (
    CandidateRecord,
    GradeRequirement,
    SubjectBasket,
    SubjectRecord,
    SubjectSpecificGrade,
)
from eligibility.core.rules import (
    AndRule,
    BasketRule,
    GeneralALPassRule,
    OLCountRule,
    OLOrGroupRule,
    OLSubjectGradeRule,
    StreamRule,
    assign_grade_buckets,
    resolve_stream,
)

PHYSICS, CHEMISTRY, BIOLOGY, COMBINED_MATHS = 1, 2, 3, 4
MATHS, SCIENCE, ENGLISH, SINHALA, TAMIL, HISTORY, RELIGION = 101, 102, 103, 104, 105, 106, 107


def _candidate(level, grades, stream_id=None):
    return CandidateRecord.build(
        [SubjectRecord(sid, level, Grade(g)) for sid, g in grades.items()], stream_id
    )


def _basket(subjects=(PHYSICS, CHEMISTRY, BIOLOGY), min_required=2, max_allowed=3, logic="AND",
            grades=(), specific=(), basket_id="science"):
    return SubjectBasket(
        id=basket_id,
        name=basket_id,
        subject_ids=frozenset(subjects),
        min_required=min_required,
        max_allowed=max_allowed,
        internal_logic=logic,
        grade_requirements=tuple(GradeRequirement(Grade(g), n) for g, n in grades),
        subject_specific_grades=tuple(SubjectSpecificGrade(s, Grade(g)) for s, g in specific),
    )


# ---------- baskets ----------

def test_scenario_a_two_credits_pass():
    rule = BasketRule(_basket(grades=[("C", 2)]))
    res = rule.evaluate(_candidate("AL", {PHYSICS: "B", CHEMISTRY: "C", BIOLOGY: "F"}))
    assert res.passed
    assert res.selected_subjects == (PHYSICS, CHEMISTRY, BIOLOGY)
    assert res.assignment == ((CHEMISTRY, Grade.C), (PHYSICS, Grade.C))
    assert res.reasons == ()


def test_scenario_a_one_credit_fails():
    rule = BasketRule(_basket(grades=[("C", 2)]))
    res = rule.evaluate(_candidate("AL", {PHYSICS: "B", CHEMISTRY: "S", BIOLOGY: "F"}))
    assert not res.passed
    assert res.reasons == ("basket:science:grade_count_unmet:C",)


def test_empty_basket_never_passes():
    res = BasketRule(_basket(subjects=(), min_required=0, max_allowed=0)).evaluate(
        _candidate("AL", {PHYSICS: "A"})
    )
    assert not res.passed
    assert res.reasons == ("basket:science:empty_subject_set",)


def test_optional_basket_passes_without_subjects():
    res = BasketRule(_basket(min_required=0, logic="OR")).evaluate(CandidateRecord())
    assert res.passed
    assert res.optional
    assert res.selected_subjects == ()


def test_subject_specific_grade_discards_subject():
    basket = _basket(logic="OR", specific=[(PHYSICS, "B")])
    ok = BasketRule(basket).evaluate(_candidate("AL", {PHYSICS: "C", CHEMISTRY: "A", BIOLOGY: "A"}))
    assert ok.passed
    assert ok.selected_subjects == (CHEMISTRY, BIOLOGY)

    short = BasketRule(basket).evaluate(_candidate("AL", {PHYSICS: "C", CHEMISTRY: "A"}))
    assert not short.passed
    assert short.reasons == (
        "basket:science:subject:1:below_min_grade",
        "basket:science:too_few_subjects",
    )


def test_or_basket_selects_best_subjects_up_to_max():
    basket = _basket(min_required=1, max_allowed=2, logic="OR", grades=[("B", 2)])
    res = BasketRule(basket).evaluate(_candidate("AL", {PHYSICS: "C", CHEMISTRY: "A", BIOLOGY: "B"}))
    assert res.passed
    assert res.selected_subjects == (CHEMISTRY, BIOLOGY)
    assert res.reasons == ()

    tied = BasketRule(_basket(min_required=1, max_allowed=1, logic="OR"))
    res = tied.evaluate(_candidate("AL", {PHYSICS: "A", CHEMISTRY: "A", BIOLOGY: "A"}))
    assert res.passed
    assert res.selected_subjects == (PHYSICS,)


def test_and_or_duality():
    candidate = _candidate("AL", {PHYSICS: "B", COMBINED_MATHS: "A"})
    assert BasketRule(_basket(min_required=1, logic="OR")).evaluate(candidate).passed

    flipped = BasketRule(_basket(min_required=1, logic="AND")).evaluate(candidate)
    assert not flipped.passed
    assert flipped.reasons == ("basket:science:missing_subjects",)

    everyone = _candidate("AL", {PHYSICS: "B", CHEMISTRY: "S", BIOLOGY: "C"})
    assert BasketRule(_basket(min_required=1, logic="AND")).evaluate(everyone).passed


def test_grade_monotonicity():
    basket = _basket(grades=[("C", 2)])
    weak = {PHYSICS: "B", CHEMISTRY: "C", BIOLOGY: "F"}
    assert BasketRule(basket).evaluate(_candidate("AL", weak)).passed

    better = {PHYSICS: "A", CHEMISTRY: "B", BIOLOGY: "S"}
    for sid in weak:
        upgraded = dict(weak)
        upgraded[sid] = better[sid]
        assert BasketRule(basket).evaluate(_candidate("AL", upgraded)).passed


def test_grade_monotonicity_or_basket_with_specific_grade():
    basket = _basket(min_required=1, max_allowed=2, logic="OR", specific=[(PHYSICS, "B")])
    before = BasketRule(basket).evaluate(_candidate("AL", {PHYSICS: "C", CHEMISTRY: "A", BIOLOGY: "A"}))
    assert before.passed

    # physics now clears its floor and rejoins a pool already at the cap
    after = BasketRule(basket).evaluate(_candidate("AL", {PHYSICS: "B", CHEMISTRY: "A", BIOLOGY: "A"}))
    assert after.passed
    assert after.selected_subjects == (CHEMISTRY, BIOLOGY)
    assert after.reasons == ()


def test_greedy_fills_highest_bucket_first():
    reqs = [GradeRequirement(Grade.C, 1), GradeRequirement(Grade.A, 1)]
    assignment, unmet = assign_grade_buckets({PHYSICS: Grade.A, CHEMISTRY: Grade.C}, reqs)
    assert assignment == ((PHYSICS, Grade.A), (CHEMISTRY, Grade.C))
    assert unmet == []

    _, unmet = assign_grade_buckets({PHYSICS: Grade.A, CHEMISTRY: Grade.S}, reqs)
    assert unmet == [GradeRequirement(Grade.C, 1)]


def test_basket_ignores_ol_records():
    res = BasketRule(_basket(min_required=1, logic="OR")).evaluate(_candidate("OL", {PHYSICS: "A"}))
    assert not res.passed


# ---------- O/L ----------

def _six_passes():
    return {MATHS: "A", SCIENCE: "B", ENGLISH: "C", SINHALA: "S", HISTORY: "S", RELIGION: "S", TAMIL: "F"}


def test_scenario_c_six_passes():
    assert OLCountRule(Grade.S, 6).evaluate(_candidate("OL", _six_passes())).passed


def test_scenario_c_five_passes():
    grades = _six_passes()
    grades[RELIGION] = "F"
    res = OLCountRule(Grade.S, 6).evaluate(_candidate("OL", grades))
    assert not res.passed
    assert res.reasons == ("ol:count:S:unmet:5/6",)


def test_count_rules_share_subjects():
    candidate = _candidate("OL", _six_passes())
    assert AndRule(OLCountRule(Grade.S, 6), OLCountRule(Grade.C, 3)).evaluate(candidate).passed


def test_or_group_any_language():
    rule = OLOrGroupRule("language", frozenset({ENGLISH, SINHALA, TAMIL}), Grade.C)
    assert rule.evaluate(_candidate("OL", {SINHALA: "S", TAMIL: "B"})).passed
    res = rule.evaluate(_candidate("OL", {SINHALA: "S"}))
    assert res.reasons == ("ol:group:language:unmet",)


def test_plain_subject_grade():
    rule = OLSubjectGradeRule(MATHS, Grade.C)
    assert rule.evaluate(_candidate("OL", {MATHS: "B"})).passed
    assert rule.evaluate(_candidate("OL", {MATHS: "S"})).reasons == ("ol:subject:101:below_min_grade",)
    assert rule.evaluate(CandidateRecord()).reasons == ("ol:subject:101:missing",)


def test_and_rule_collects_every_reason():
    res = AndRule(OLSubjectGradeRule(MATHS, Grade.C), OLSubjectGradeRule(ENGLISH, Grade.S)).evaluate(
        CandidateRecord()
    )
    assert not res.passed
    assert res.reasons == ("ol:subject:101:missing", "ol:subject:103:missing")


def test_empty_and_rule_passes():
    assert AndRule().evaluate(CandidateRecord()).passed


# ---------- A/L extras ----------

def test_general_al_pass():
    rule = GeneralALPassRule(3, Grade.S)
    assert rule.evaluate(_candidate("AL", {PHYSICS: "A", CHEMISTRY: "S", BIOLOGY: "S"})).passed
    res = rule.evaluate(_candidate("AL", {PHYSICS: "A", CHEMISTRY: "S", BIOLOGY: "F"}))
    assert res.reasons == ("al:general_pass_unmet",)


ECONOMICS, GEOGRAPHY, HISTORY_AL, AGRICULTURE = 17, 18, 21, 4
BIOLOGY_AL = 5


def test_stream_rule():
    assert StreamRule([]).evaluate(CandidateRecord()).passed
    rule = StreamRule([1, 2])
    assert rule.evaluate(CandidateRecord(stream_id=2)).passed
    assert rule.evaluate(CandidateRecord(stream_id=5)).reasons == ("al:stream_not_allowed",)


def test_stream_rule_keeps_course_open_without_stream():
    res = StreamRule([1, 2]).evaluate(CandidateRecord())
    assert res.passed
    assert res.reasons == ()


def test_stream_comes_from_subject_combination_first():
    arts = _candidate("AL", {ECONOMICS: "B", GEOGRAPHY: "C", HISTORY_AL: "S"}, stream_id=3)
    assert resolve_stream(arts) == 1
    assert StreamRule([1]).evaluate(arts).passed
    assert StreamRule([3]).evaluate(arts).reasons == ("al:stream_not_allowed",)

    bio = _candidate("AL", {PHYSICS: "A", AGRICULTURE: "B", BIOLOGY_AL: "C"})
    assert resolve_stream(bio) == 3

    # no matching combination, the chosen stream is used
    unusual = _candidate("AL", {ECONOMICS: "A", PHYSICS: "A", 40: "B"}, stream_id=2)
    assert resolve_stream(unusual) == 2
    assert resolve_stream(_candidate("AL", {ECONOMICS: "A"})) is None
