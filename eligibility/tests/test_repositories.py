import json

import pytest

from eligibility.core.errors import StructuralInvariantViolation
from eligibility.core.repositories import JsonCourseRepository
from eligibility.core.rule_factory import RuleFactory
from eligibility.loaders import load_courses, load_courses_file

COURSES = [
    {"id": "c1", "name": "Arts", "requirements": {"minRequirement": "OLPass"}},
    {"id": "c2", "name": "Engineering", "university": "Moratuwa", "requirements": {"minRequirement": "ALPass"}},
]


def test_repository_lists_courses():
    repo = JsonCourseRepository(COURSES, RuleFactory())
    courses = repo.list_courses()
    assert [c.id for c in courses] == ["c1", "c2"]
    assert courses[1].university == "Moratuwa"


def test_repository_get():
    repo = JsonCourseRepository(COURSES, RuleFactory())
    assert repo.get("c2").name == "Engineering"
    with pytest.raises(KeyError):
        repo.get("missing")


def test_unparseable_course_raises():
    repo = JsonCourseRepository([{"id": "bad", "requirements": {}}], RuleFactory())
    with pytest.raises(StructuralInvariantViolation):
        repo.list_courses()


def test_load_courses_accepts_catalog_shapes(tmp_path):
    (tmp_path / "courses.json").write_text(json.dumps({"courses": COURSES}), encoding="utf-8")
    assert [c["id"] for c in load_courses(str(tmp_path))] == ["c1", "c2"]

    single = tmp_path / "one.json"
    single.write_text(json.dumps(COURSES[0]), encoding="utf-8")
    assert [c["id"] for c in load_courses_file(str(single))] == ["c1"]
