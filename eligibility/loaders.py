import json
import os
from typing import Any, Dict, List, Optional

from eligibility.config import DATA_DIR


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _as_course_list(data: Any) -> List[Dict[str, Any]]:
    # {"courses": [...]}, a bare list, or a single course object
    if isinstance(data, dict):
        return data["courses"] if "courses" in data else [data]
    return list(data)


def load_courses_file(path: str) -> List[Dict[str, Any]]:
    return _as_course_list(_read_json(path))


def load_courses(root: Optional[str] = None) -> List[Dict[str, Any]]:
    return load_courses_file(os.path.join(root or str(DATA_DIR), "courses.json"))


def load_candidate(path: str) -> Any:
    return _read_json(path)
