"""Planning layer: plan validation and the fallback plan."""

from .parser import extract_json, plan_from_dict, parse_execution_plan
from .fallback import build_fallback_plan

__all__ = [
    "extract_json",
    "plan_from_dict",
    "parse_execution_plan",
    "build_fallback_plan",
]
