import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from eligibility.config import LOG_LEVEL
from eligibility.core.engine import EligibilityEngine
from eligibility.core.repositories import JsonCourseRepository
from eligibility.core.rule_factory import RuleFactory
from eligibility.loaders import load_candidate, load_courses, load_courses_file

logger = logging.getLogger(__name__)


def compute(courses_json: List[Dict[str, Any]], candidate_json: Any,
            course_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    factory = RuleFactory()
    candidate = factory.candidate_from_json(candidate_json)
    repo = JsonCourseRepository(courses_json, factory)
    engine = EligibilityEngine(repo=repo)

    selected_ids = set(course_ids) if course_ids else set()
    aggregated: List[Dict[str, Any]] = []
    for r in engine.evaluate_candidate(candidate):
        if selected_ids and r.course.id not in selected_ids:
            continue
        item: Dict[str, Any] = {
            "courseId": r.course.id,
            "courseName": r.course.name,
            "university": r.course.university,
            "eligible": r.eligible,
        }
        if r.verdict is not None:
            item["verdict"] = r.verdict.to_dict()
        if r.errors:
            item["errors"] = r.errors
        aggregated.append(item)
    return aggregated


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eligibility-check",
        description="Check a candidate's O/L and A/L results against course entry requirements.",
    )
    parser.add_argument("--courses", help="course catalog JSON file (default: courses.json in the data directory)")
    parser.add_argument("--candidate", required=True, help="candidate record JSON file")
    parser.add_argument("--course-id", action="append", dest="course_ids",
                        help="only report this course (repeatable)")
    parser.add_argument("--eligible-only", action="store_true", help="drop ineligible courses")
    parser.add_argument("--log-level", default=LOG_LEVEL)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        courses = load_courses_file(args.courses) if args.courses else load_courses()
        results = compute(courses, load_candidate(args.candidate), args.course_ids)
    except (OSError, ValueError) as e:
        # ValueError covers bad JSON, pydantic validation and unparseable rules
        logger.error("Cannot evaluate: %s", e)
        return 2

    if args.eligible_only:
        results = [r for r in results if r["eligible"]]
    json.dump(results, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
