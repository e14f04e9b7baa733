from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from core.charts import org_unit_chart, status_chart, to_vega_spec
from core.data import ContractRecord
from core.status import EXPIRING_DAYS_LIMIT, StatusCategory, classify, org_unit


TOP_ORG_UNITS = 5


@dataclass(frozen=True)
class MetricsSnapshot:
    total: int = 0
    active: int = 0
    expired: int = 0
    expiring_soon: int = 0
    status_counts: Dict[str, int] = field(default_factory=dict)
    org_unit_counts: Dict[str, int] = field(default_factory=dict)


def compute_metrics(records: Iterable[ContractRecord], limit: int = EXPIRING_DAYS_LIMIT) -> MetricsSnapshot:
    """Summary counts over the whole dataset.

    `active` is the raw in-force count; the composite "active" filter also
    admits expiring-soon records. Status groups keep the raw uppercased label.
    """
    total = active = expired = expiring = 0
    status_counts: Dict[str, int] = {}
    unit_counts: Dict[str, int] = {}
    for record in records:
        c = classify(record, limit)
        total += 1
        if c.category == StatusCategory.IN_FORCE:
            active += 1
        elif c.category == StatusCategory.EXPIRED:
            expired += 1
        if c.expiring_soon:
            expiring += 1
        status_counts[c.status] = status_counts.get(c.status, 0) + 1
        unit = org_unit(record)
        unit_counts[unit] = unit_counts.get(unit, 0) + 1
    return MetricsSnapshot(
        total=total,
        active=active,
        expired=expired,
        expiring_soon=expiring,
        status_counts=status_counts,
        org_unit_counts=unit_counts,
    )


def top_org_units(snapshot: MetricsSnapshot, n: int = TOP_ORG_UNITS) -> List[Tuple[str, int]]:
    # sorted() is stable, so ties keep first-encountered order.
    ranked = sorted(snapshot.org_unit_counts.items(), key=lambda kv: kv[1], reverse=True)
    return ranked[:n] if n > 0 else []


def compute_overview(snapshot: MetricsSnapshot, *, top_n: int = TOP_ORG_UNITS) -> Dict[str, Any]:
    top_units = top_org_units(snapshot, top_n)
    charts: Dict[str, Any] = {}
    if snapshot.status_counts:
        charts["status_breakdown"] = to_vega_spec(status_chart(snapshot.status_counts))
    if top_units:
        charts["top_org_units"] = to_vega_spec(org_unit_chart(top_units))

    payload = asdict(snapshot)
    return {
        "kpis": {
            "total": snapshot.total,
            "active": snapshot.active,
            "expired": snapshot.expired,
            "expiring_soon": snapshot.expiring_soon,
        },
        "status_counts": payload["status_counts"],
        "org_unit_counts": payload["org_unit_counts"],
        "top_org_units": [{"org_unit": u, "count": c} for u, c in top_units],
        "charts": charts,
    }
