from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from core.filters import ALL_ORG_UNITS, DEFAULT_PAGE_SIZE
from core.status import EXPIRING_DAYS_LIMIT


StatusFilterValue = Literal["all", "active", "in_force", "expired", "terminated", "expiring"]


class ContractFiltersModel(BaseModel):
    query: str = ""
    status: StatusFilterValue = "all"
    org_unit: str = ALL_ORG_UNITS
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=200)
    expiring_days_limit: int = EXPIRING_DAYS_LIMIT


class ContractFieldsModel(BaseModel):
    fields: Dict[str, Optional[str]] = Field(default_factory=dict)


class HeaderModel(BaseModel):
    key: str
    label: str


class DaysBadgeModel(BaseModel):
    kind: str
    days: int
    text: str


class ContractRowModel(BaseModel):
    id: str
    cells: List[str]
    status: str
    category: str
    days_badge: Optional[DaysBadgeModel] = None
    record: Dict[str, str]


class ContractPageModel(BaseModel):
    columns: List[HeaderModel]
    items: List[ContractRowModel]
    page: int
    page_size: int
    total_items: int
    total_pages: int
