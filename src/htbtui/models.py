"""
Data models for the machine catalog.

Machines are built from labs API payloads at the gateway boundary and are
immutable afterwards; a refresh replaces the whole collection.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from .exceptions import MalformedResponseError

__all__ = [
    "FilterCriteria",
    "InputMode",
    "Machine",
    "SortCriteria",
    "normalize_active",
]


def normalize_active(value: Any) -> bool:
    """Decode the API's ``active`` field, which is either a bool or 0/1."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    return False


class _CyclicEnum(Enum):
    """Enum whose members form a closed cycle in declaration order."""

    def next(self):
        members = list(type(self))
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def parse(cls, text: str):
        """Look up a member by value or name, case-insensitively."""
        key = (text or "").strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown {cls.__name__} '{text}' (choose from: {choices})")


class FilterCriteria(_CyclicEnum):
    """Which machines to keep in the projection."""

    NONE = "none"
    USER_NOT_OWNED = "user"
    ROOT_NOT_OWNED = "root"
    BOTH_NOT_OWNED = "both"

    @property
    def label(self) -> str:
        label_map = {
            FilterCriteria.NONE: "All",
            FilterCriteria.USER_NOT_OWNED: "User not owned",
            FilterCriteria.ROOT_NOT_OWNED: "Root not owned",
            FilterCriteria.BOTH_NOT_OWNED: "User and root not owned",
        }
        return label_map[self]


class SortCriteria(_CyclicEnum):
    """Ordering applied after filtering."""

    DIFFICULTY = "difficulty"
    USER_OWNS = "user_owns"
    ROOT_OWNS = "root_owns"
    NAME = "name"

    @property
    def label(self) -> str:
        label_map = {
            SortCriteria.DIFFICULTY: "Difficulty",
            SortCriteria.USER_OWNS: "User owns",
            SortCriteria.ROOT_OWNS: "Root owns",
            SortCriteria.NAME: "Name",
        }
        return label_map[self]


class InputMode(Enum):
    """Whether keystrokes are commands or flag text."""

    NORMAL = "normal"
    TEXT_ENTRY = "text_entry"


@dataclass(frozen=True)
class Machine:
    """A single catalog entry."""

    id: int
    name: str
    os: str = ""
    points: int = 0
    difficulty: int = 0
    star: float = 0.0
    release: str = ""
    user_owns_count: int = 0
    auth_user_in_user_owns: bool = False
    root_owns_count: int = 0
    auth_user_in_root_owns: bool = False
    is_active: bool = False
    ip: Optional[str] = None

    @property
    def fully_owned(self) -> bool:
        return self.auth_user_in_user_owns and self.auth_user_in_root_owns

    @property
    def accepts_flag(self) -> bool:
        """Active and still missing at least one own."""
        return self.is_active and not self.fully_owned

    def with_ip(self, ip: Optional[str]) -> "Machine":
        return replace(self, ip=ip)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Machine":
        """Build a machine from one entry of a paginated listing."""
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected machine object, got {type(data).__name__}")
        machine_id = data.get("id")
        if isinstance(machine_id, bool) or not isinstance(machine_id, int):
            raise MalformedResponseError(f"Machine entry without integer id: {machine_id!r}")

        return cls(
            id=machine_id,
            name=str(data.get("name") or ""),
            os=str(data.get("os") or ""),
            points=_as_int(data.get("points")),
            difficulty=_as_int(data.get("difficulty")),
            star=_as_float(data.get("star")),
            release=str(data.get("release") or ""),
            user_owns_count=_as_int(data.get("user_owns_count")),
            auth_user_in_user_owns=bool(data.get("authUserInUserOwns")),
            root_owns_count=_as_int(data.get("root_owns_count")),
            auth_user_in_root_owns=bool(data.get("authUserInRootOwns")),
            is_active=normalize_active(data.get("active")),
            ip=data.get("ip") if isinstance(data.get("ip"), str) else None,
        )


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
