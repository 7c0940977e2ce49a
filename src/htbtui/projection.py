"""Filter and sort the machine collection into the list that is shown."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List

from .models import FilterCriteria, Machine, SortCriteria

__all__ = ["matches_filter", "project", "sort_key"]


def matches_filter(machine: Machine, criteria: FilterCriteria) -> bool:
    if criteria is FilterCriteria.USER_NOT_OWNED:
        return not machine.auth_user_in_user_owns
    if criteria is FilterCriteria.ROOT_NOT_OWNED:
        return not machine.auth_user_in_root_owns
    if criteria is FilterCriteria.BOTH_NOT_OWNED:
        return not machine.auth_user_in_user_owns and not machine.auth_user_in_root_owns
    return True


def sort_key(criteria: SortCriteria) -> Callable[[Machine], Any]:
    # Own counts sort descending.
    if criteria is SortCriteria.USER_OWNS:
        return lambda m: -m.user_owns_count
    if criteria is SortCriteria.ROOT_OWNS:
        return lambda m: -m.root_owns_count
    if criteria is SortCriteria.NAME:
        return lambda m: m.name
    return lambda m: m.difficulty


def project(
    machines: Iterable[Machine],
    filter_criteria: FilterCriteria,
    sort_criteria: SortCriteria,
) -> List[Machine]:
    """
    Return the filtered, sorted view of ``machines``.

    Pure: the same inputs always give the same list, and machines with equal
    sort keys keep their input order.
    """
    kept = [m for m in machines if matches_filter(m, filter_criteria)]
    return sorted(kept, key=sort_key(sort_criteria))
