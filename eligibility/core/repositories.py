from typing import Any, List, Protocol

from eligibility.core.models import Course
from eligibility.core.rule_factory import RuleFactory


class CourseRepository(Protocol):
    def list_courses(self) -> List[Course]:
        ...


class JsonCourseRepository:
    """Courses from already-loaded catalog JSON. A course whose JSON cannot be parsed raises."""

    def __init__(self, courses_json: Any, factory: RuleFactory):
        self.courses_json = courses_json
        self.factory = factory

    def list_courses(self) -> List[Course]:
        return [self.factory.course_from_json(c) for c in self.courses_json]

    def get(self, course_id: str) -> Course:
        for c in self.courses_json:
            if str(c.get("id")) == str(course_id):
                return self.factory.course_from_json(c)
        raise KeyError(course_id)
