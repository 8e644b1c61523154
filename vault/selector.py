"""
Mango-style selector evaluation for rich queries over JSON documents.

Query shape:
    {"selector": {...}, "sort": [...], "limit": N, "skip": N}

Supported operators: $eq $ne $gt $gte $lt $lte $in $nin $exists $and $or.
Fields may use dotted paths into nested objects. A field condition that is
a plain value means equality.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List, Tuple

_MISSING = object()


def _comparable(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return False
    numbers = (int, float)
    return (isinstance(a, numbers) and isinstance(b, numbers)) or (isinstance(a, str) and isinstance(b, str))


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, arg: Any) -> bool:
        return value is not _MISSING and _comparable(value, arg) and op(value, arg)
    return check


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": lambda v, arg: v is not _MISSING and v == arg,
    "$ne": lambda v, arg: v is not _MISSING and v != arg,
    "$gt": _compare(lambda v, arg: v > arg),
    "$gte": _compare(lambda v, arg: v >= arg),
    "$lt": _compare(lambda v, arg: v < arg),
    "$lte": _compare(lambda v, arg: v <= arg),
    "$in": lambda v, arg: v is not _MISSING and v in arg,
    "$nin": lambda v, arg: v is not _MISSING and v not in arg,
    "$exists": lambda v, arg: (v is not _MISSING) == bool(arg),
}


def _lookup(doc: Dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _match_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, arg in condition.items():
            if op not in OPERATORS:
                raise ValueError(f"unsupported operator {op}")
            if op in ("$in", "$nin") and not isinstance(arg, list):
                raise ValueError(f"{op} expects a list")
            if not OPERATORS[op](value, arg):
                return False
        return True
    if isinstance(condition, dict):
        return isinstance(value, dict) and matches(value, condition)
    return OPERATORS["$eq"](value, condition)


def matches(doc: Dict[str, Any], selector: Dict[str, Any]) -> bool:
    """True if ``doc`` satisfies every clause of ``selector``."""
    for field, condition in selector.items():
        if field == "$and":
            if not all(matches(doc, sub) for sub in _clauses(field, condition)):
                return False
        elif field == "$or":
            if not any(matches(doc, sub) for sub in _clauses(field, condition)):
                return False
        elif field.startswith("$"):
            raise ValueError(f"unsupported operator {field}")
        elif not _match_condition(_lookup(doc, field), condition):
            return False
    return True


def _clauses(op: str, condition: Any) -> List[Dict[str, Any]]:
    if not isinstance(condition, list) or not all(isinstance(c, dict) for c in condition):
        raise ValueError(f"{op} expects a list of selectors")
    return condition


def parse_query(query: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(query)
    except json.JSONDecodeError as e:
        raise ValueError(f"query is not valid JSON: {e}") from e
    if not isinstance(parsed, dict) or not isinstance(parsed.get("selector"), dict):
        raise ValueError("query must be a JSON object with a 'selector' object")
    for key in ("limit", "skip"):
        if key in parsed and (not isinstance(parsed[key], int) or parsed[key] < 0):
            raise ValueError(f"{key} must be a non-negative integer")
    return parsed


def _sort_spec(sort: Any) -> List[Tuple[str, bool]]:
    if not isinstance(sort, list):
        raise ValueError("sort must be a list")
    spec = []
    for item in sort:
        if isinstance(item, str):
            spec.append((item, False))
        elif isinstance(item, dict) and len(item) == 1:
            field, direction = next(iter(item.items()))
            if direction not in ("asc", "desc"):
                raise ValueError(f"sort direction must be asc or desc, got {direction!r}")
            spec.append((field, direction == "desc"))
        else:
            raise ValueError(f"invalid sort entry {item!r}")
    return spec


def _sort_key(value: Any) -> Tuple[int, Any]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (2, "")


def run_query(items: Iterable[Tuple[str, bytes]], query: str) -> List[Tuple[str, bytes]]:
    """
    Evaluate ``query`` over (key, raw JSON) pairs in key order.

    Values that are not JSON objects (index entries) never match.

    Raises:
        ValueError: malformed query
    """
    parsed = parse_query(query)
    selector = parsed["selector"]

    hits: List[Tuple[str, bytes, Dict[str, Any]]] = []
    for key, raw in items:
        try:
            doc = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            continue
        if isinstance(doc, dict) and matches(doc, selector):
            hits.append((key, raw, doc))

    if "sort" in parsed:
        # Stable sorts applied from the least significant field
        for field, descending in reversed(_sort_spec(parsed["sort"])):
            hits.sort(key=lambda h: _sort_key(_lookup(h[2], field)), reverse=descending)

    skip = parsed.get("skip", 0)
    hits = hits[skip:]
    if "limit" in parsed:
        hits = hits[: parsed["limit"]]
    return [(key, raw) for key, raw, _ in hits]
