from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from core.data import ContractRecord, field_values
from core.status import EXPIRING_DAYS_LIMIT, StatusCategory, classify, org_unit


DEFAULT_PAGE_SIZE = 8
MAX_PAGE_SIZE = 200
ALL_ORG_UNITS = "all"


class StatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    IN_FORCE = "in_force"
    EXPIRED = "expired"
    TERMINATED = "terminated"
    EXPIRING = "expiring"


# Selector strings used by the spreadsheet owners.
_STATUS_ALIASES = {
    "TODOS": StatusFilter.ALL,
    "ATIVOS": StatusFilter.ACTIVE,
    "VIGENTE": StatusFilter.IN_FORCE,
    "VENCIDO": StatusFilter.EXPIRED,
    "RESCINDIDO": StatusFilter.TERMINATED,
    "A VENCER": StatusFilter.EXPIRING,
}

_ORG_UNIT_ALIASES = {"TODAS", "ALL"}

_CATEGORY_FOR_FILTER = {
    StatusFilter.IN_FORCE: StatusCategory.IN_FORCE,
    StatusFilter.EXPIRED: StatusCategory.EXPIRED,
    StatusFilter.TERMINATED: StatusCategory.TERMINATED,
}


@dataclass(frozen=True)
class ContractFilters:
    query: str = ""
    status: StatusFilter = StatusFilter.ALL
    org_unit: str = ALL_ORG_UNITS
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    expiring_days_limit: int = EXPIRING_DAYS_LIMIT


@dataclass(frozen=True)
class Page:
    items: List[ContractRecord] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_items: int = 0
    total_pages: int = 0


def parse_status_filter(value: object, default: StatusFilter = StatusFilter.ALL) -> StatusFilter:
    if isinstance(value, StatusFilter):
        return value
    if value is None:
        return default
    s = str(value).strip()
    if not s:
        return default
    alias = _STATUS_ALIASES.get(s.upper())
    if alias is not None:
        return alias
    try:
        return StatusFilter(s.lower())
    except ValueError:
        return default


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except Exception:
        return default


def normalize_filters(raw: Optional[dict]) -> ContractFilters:
    raw = raw or {}
    query = str(raw.get("query") or "")
    status = parse_status_filter(raw.get("status"))

    # The selector keeps its exact text; only a blank value or an alias means "all".
    unit = str(raw.get("org_unit") or "")
    if not unit.strip() or unit.strip().upper() in _ORG_UNIT_ALIASES:
        unit = ALL_ORG_UNITS

    page = max(1, _as_int(raw.get("page", 1), 1))
    page_size = max(1, min(MAX_PAGE_SIZE, _as_int(raw.get("page_size", DEFAULT_PAGE_SIZE), DEFAULT_PAGE_SIZE)))
    limit = _as_int(raw.get("expiring_days_limit", EXPIRING_DAYS_LIMIT), EXPIRING_DAYS_LIMIT)

    return ContractFilters(
        query=query,
        status=status,
        org_unit=unit,
        page=page,
        page_size=page_size,
        expiring_days_limit=limit,
    )


# ---------------- Predicates ----------------
def matches_text(record: ContractRecord, query: str) -> bool:
    if not query:
        return True
    q = query.lower()
    return any(q in value.lower() for value in field_values(record))


def matches_status(record: ContractRecord, status: StatusFilter, limit: int = EXPIRING_DAYS_LIMIT) -> bool:
    if status == StatusFilter.ALL:
        return True
    c = classify(record, limit)
    if status == StatusFilter.ACTIVE:
        return c.category == StatusCategory.IN_FORCE or c.expiring_soon
    if status == StatusFilter.EXPIRING:
        return c.expiring_soon
    return c.category == _CATEGORY_FOR_FILTER[status]


def matches_org_unit(record: ContractRecord, unit: str) -> bool:
    if unit == ALL_ORG_UNITS:
        return True
    return org_unit(record) == unit


def matches(record: ContractRecord, filters: ContractFilters) -> bool:
    return (
        matches_text(record, filters.query)
        and matches_status(record, filters.status, filters.expiring_days_limit)
        and matches_org_unit(record, filters.org_unit)
    )


def filter_records(records: Iterable[ContractRecord], filters: ContractFilters) -> List[ContractRecord]:
    return [r for r in records if matches(r, filters)]


def paginate(records: List[ContractRecord], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    total = len(records)
    total_pages = math.ceil(total / page_size) if page_size > 0 else 0
    items = records[(page - 1) * page_size : page * page_size] if page >= 1 and page_size > 0 else []
    return Page(items=items, page=page, page_size=page_size, total_items=total, total_pages=total_pages)


def org_unit_options(records: Iterable[ContractRecord]) -> List[str]:
    units = {org_unit(r) for r in records}
    return [ALL_ORG_UNITS] + sorted(u for u in units if u)
