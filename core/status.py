from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from core.data import ContractRecord, get_val_any


STATUS_FIELD: Tuple[str, ...] = ("SITUAÇÃO", "SITUACAO")
DAYS_FIELD: Tuple[str, ...] = ("FALTANTES", "DIAS")
ORG_UNIT_FIELD: Tuple[str, ...] = ("SECRETARIA",)
CONTRACT_FIELD: Tuple[str, ...] = ("CONTRATO",)

EXPIRING_DAYS_LIMIT = 30

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)", re.ASCII)


class StatusCategory(str, Enum):
    IN_FORCE = "VIGENTE"
    EXPIRED = "VENCIDO"
    TERMINATED = "RESCINDIDO"
    OTHER = "OUTRO"


# First match wins.
CATEGORY_MARKERS: Tuple[StatusCategory, ...] = (
    StatusCategory.IN_FORCE,
    StatusCategory.EXPIRED,
    StatusCategory.TERMINATED,
)

_CATEGORY_COLORS = {
    StatusCategory.IN_FORCE: "rgb(16, 185, 129)",
    StatusCategory.EXPIRED: "rgb(244, 63, 94)",
    StatusCategory.TERMINATED: "rgb(100, 116, 139)",
    StatusCategory.OTHER: "rgb(59, 130, 246)",
}

_CATEGORY_ICONS = {
    StatusCategory.IN_FORCE: "check",
    StatusCategory.EXPIRED: "x",
    StatusCategory.TERMINATED: "alert",
    StatusCategory.OTHER: "clock",
}


@dataclass(frozen=True)
class Classification:
    status: str
    category: StatusCategory
    days: Optional[int]
    expiring_soon: bool


@dataclass(frozen=True)
class DaysBadge:
    kind: str  # soon | overdue | normal
    days: int
    text: str


def status_text(record: ContractRecord) -> str:
    return str(get_val_any(record, STATUS_FIELD)).upper()


def org_unit(record: ContractRecord) -> str:
    return str(get_val_any(record, ORG_UNIT_FIELD))


def classify_status(status: str) -> StatusCategory:
    s = str(status).upper()
    for marker in CATEGORY_MARKERS:
        if marker.value in s:
            return marker
    return StatusCategory.OTHER


def parse_days(value: object) -> Optional[int]:
    """Leading base-10 integer of `value` ("10 dias" -> 10), or None when there is none."""
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def is_expiring_soon(days: Optional[int], limit: int = EXPIRING_DAYS_LIMIT) -> bool:
    return days is not None and 0 < days <= limit


def remaining_days(record: ContractRecord) -> Optional[int]:
    return parse_days(get_val_any(record, DAYS_FIELD))


def classify(record: ContractRecord, limit: int = EXPIRING_DAYS_LIMIT) -> Classification:
    status = status_text(record)
    days = remaining_days(record)
    return Classification(
        status=status,
        category=classify_status(status),
        days=days,
        expiring_soon=is_expiring_soon(days, limit),
    )


def days_badge(days: Optional[int], limit: int = EXPIRING_DAYS_LIMIT) -> Optional[DaysBadge]:
    if days is None:
        return None
    if is_expiring_soon(days, limit):
        return DaysBadge(kind="soon", days=days, text=f"{days} days")
    if days < 0:
        return DaysBadge(kind="overdue", days=abs(days), text=f"Expired ({abs(days)}d)")
    return DaysBadge(kind="normal", days=days, text=f"{days} days")


def status_color(status: str) -> str:
    return _CATEGORY_COLORS[classify_status(status)]


def status_icon(status: str) -> str:
    return _CATEGORY_ICONS[classify_status(status)]
