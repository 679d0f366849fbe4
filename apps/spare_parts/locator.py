"""
Storage-location ordering and catalog search.

Locations look like ``<number>-<rest>`` (``1-01``, ``12-B3``). Listings are
ordered by the number first and the rest second; a location without a
numeric prefix goes last.
"""
import math
import re
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple

ALL_CATEGORIES = "all"
_LEADING_DIGITS = re.compile(r"\s*([0-9]+)")


def parse_location(location: Optional[str]) -> Tuple[float, str]:
    if not location:
        return math.inf, ""
    prefix, _, rest = location.partition("-")
    # Leading ASCII digits only: "12abc" is 12, "1_0" is 1
    match = _LEADING_DIGITS.match(prefix)
    if not match:
        return math.inf, rest
    return int(match.group(1)), rest


def location_sort_key(location: Optional[str]) -> Tuple[float, str, str]:
    number, rest = parse_location(location)
    return number, rest.casefold(), rest


def compare_location(a: Optional[str], b: Optional[str]) -> int:
    key_a = location_sort_key(a)
    key_b = location_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def sort_by_location(parts: Iterable) -> List:
    return sorted(parts, key=cmp_to_key(lambda a, b: compare_location(a.storage_location, b.storage_location)))


def _category_value(category) -> Optional[str]:
    return getattr(category, "value", category)


def matches(part, search_term: Optional[str] = None, category_filter: Optional[str] = ALL_CATEGORIES) -> bool:
    if category_filter and category_filter != ALL_CATEGORIES:
        if _category_value(part.category) != _category_value(category_filter):
            return False

    if not search_term:
        return True

    needle = search_term.lower()
    for haystack in (part.part_code, part.name, part.machine_type, part.storage_location):
        if haystack and needle in haystack.lower():
            return True
    return False


def filter_parts(parts: Iterable, search_term: Optional[str] = None,
                 category_filter: Optional[str] = ALL_CATEGORIES) -> List:
    """Catalog view: matching parts in canonical location order."""
    return sort_by_location(p for p in parts if matches(p, search_term, category_filter))
