"""
Query parameter -> predicate compilation for the part listing

Rules:
- globalSearch wins: every field-specific filter is dropped and the term is
  matched case-insensitively against seven fields (OR)
- otherwise field filters are AND-combined
- category / subCategory / supplier accept one tag or a JSON array literal;
  an array requires all tags, a single tag requires that tag
- startDate + endDate add an inclusive createdAt range; one bound alone is ignored
- unknown parameters are ignored; no parameters compiles to None (no filter)
"""
import json
import logging
import re
from typing import List, Mapping, Optional, Union

from parts_catalog.models.part_models import parse_timestamp
from parts_catalog.models.predicates import (
    And,
    ContainsAll,
    ContainsAny,
    Or,
    Predicate,
    RangeClosed,
    Regex,
)

logger = logging.getLogger(__name__)

GLOBAL_SEARCH_FIELDS = (
    "part_number",
    "part_name",
    "part_description",
    "category",
    "sub_category",
    "supplier",
    "alternative_part_numbers",
)

# query parameter -> part field, substring matched
TEXT_PARAMS = {
    "partNumber": "part_number",
    "partName": "part_name",
    "alternativePartNumber": "alternative_part_numbers",
    "description": "part_description",
}

# query parameter -> tag-set field
TAG_PARAMS = {
    "category": "category",
    "subCategory": "sub_category",
    "supplier": "supplier",
}


def substring_pattern(term: str) -> str:
    """Regex matching the term literally anywhere in the value"""
    return re.escape(term)


def coerce_tag_param(raw: str) -> Union[List[str], str]:
    """
    Coerce a tag filter value into a list of tags or a single tag

    A value starting with "[" is parsed as a JSON array. When parsing fails,
    or the literal is not an array, the raw string is used as a single tag.
    Array elements are converted to strings.
    """
    if not raw.startswith("["):
        return raw
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.debug(f"Malformed array literal {raw!r}, matching it as a single tag")
        return raw
    if not isinstance(parsed, list):
        return raw
    return [v if isinstance(v, str) else json.dumps(v) for v in parsed]


def compile_tag_filter(field: str, raw: str) -> Predicate:
    tags = coerce_tag_param(raw)
    if isinstance(tags, list):
        return ContainsAll(field, tuple(tags))
    return ContainsAny(field, (tags,))


def compile_date_range(start: Optional[str], end: Optional[str]) -> Optional[RangeClosed]:
    if not start or not end:
        return None
    try:
        low = parse_timestamp(start)
        high = parse_timestamp(end)
    except ValueError:
        logger.warning(f"Ignoring unparseable date range {start!r} - {end!r}")
        return None
    return RangeClosed("created_at", low, high)


def compile_filters(params: Mapping[str, str]) -> Optional[Predicate]:
    """Compile listing query parameters into a predicate (None matches every part)"""
    clauses: List[Predicate] = []

    global_search = params.get("globalSearch")
    if global_search:
        pattern = substring_pattern(global_search)
        clauses.append(Or(tuple(Regex(f, pattern) for f in GLOBAL_SEARCH_FIELDS)))
    else:
        for param, field in TEXT_PARAMS.items():
            value = params.get(param)
            if value:
                clauses.append(Regex(field, substring_pattern(value)))

        for param, field in TAG_PARAMS.items():
            value = params.get(param)
            if value:
                clauses.append(compile_tag_filter(field, value))

    date_range = compile_date_range(params.get("startDate"), params.get("endDate"))
    if date_range is not None:
        clauses.append(date_range)

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return And(tuple(clauses))
