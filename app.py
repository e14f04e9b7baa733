from contextlib import contextmanager
from typing import List, Optional

import pandas as pd
import streamlit as st

from core.charts import org_unit_chart, status_chart
from core.data import ID_FIELD, get_val_any
from core.export import CSV_FILENAME, PDF_FILENAME, export_csv, export_pdf
from core.filters import (
    ALL_ORG_UNITS,
    DEFAULT_PAGE_SIZE,
    StatusFilter,
    filter_records,
    normalize_filters,
    org_unit_options,
    paginate,
)
from core.metrics_overview import top_org_units
from core.projection import editable_headers, is_required, project_headers, project_row
from core.status import CONTRACT_FIELD, EXPIRING_DAYS_LIMIT, STATUS_FIELD, classify, days_badge, status_icon
from core.store import STATE_ERRORED, RecordNotFound, get_store

STATUS_OPTIONS = {
    StatusFilter.ACTIVE: "Active (in force + expiring)",
    StatusFilter.ALL: "All statuses",
    StatusFilter.IN_FORCE: "In force",
    StatusFilter.EXPIRING: f"Expiring ({EXPIRING_DAYS_LIMIT} days)",
    StatusFilter.EXPIRED: "Expired",
    StatusFilter.TERMINATED: "Terminated",
}
ICON_GLYPHS = {"check": "✅", "x": "⛔", "alert": "⚠️", "clock": "🕒"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(query: str, status: StatusFilter, unit: str) -> str:
    chips = [
        f"Status: {STATUS_OPTIONS[status]}",
        "Org unit: All" if unit == ALL_ORG_UNITS else f"Org unit: {unit}",
        f"Search: {query}" if query else "Search: none",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: Optional[str] = None):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if st.button("Reload sheet"):
            store.reload()
            st.rerun()
    if filter_summary_html:
        st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def go_to_contracts(status: StatusFilter):
    st.session_state["status_filter"] = status
    st.session_state["nav"] = "Contracts"
    st.session_state["page"] = 1


# ---------- UI setup ----------
st.set_page_config(page_title="Contract Management", layout="wide")
inject_base_styles()

store = get_store()
if store.state == STATE_ERRORED and not store.records:
    st.error(f"Could not load the contracts spreadsheet: {store.error}")
    if st.button("Try again"):
        store.reload()
        st.rerun()
    st.stop()
if store.state == STATE_ERRORED:
    st.warning(f"Reload failed, showing the previously loaded data: {store.error}")

st.session_state.setdefault("nav", "Dashboard")
st.session_state.setdefault("status_filter", StatusFilter.ACTIVE)
st.session_state.setdefault("page", 1)

with st.sidebar:
    st.markdown("### Navigate")
    st.radio("Navigate", ["Dashboard", "Contracts"], key="nav")

    st.markdown("---")
    st.markdown("### Quick filters")
    query = st.text_input("Search contracts", "")
    status_filter = st.selectbox(
        "Status",
        options=list(STATUS_OPTIONS.keys()),
        format_func=lambda s: STATUS_OPTIONS[s],
        key="status_filter",
    )
    unit_options = org_unit_options(store.records)
    org_unit = st.selectbox("Org unit", options=unit_options, format_func=lambda u: "All org units" if u == ALL_ORG_UNITS else u)

filters = normalize_filters(
    {
        "query": query,
        "status": status_filter,
        "org_unit": org_unit,
        "page": st.session_state["page"],
        "page_size": DEFAULT_PAGE_SIZE,
    }
)
filtered = filter_records(store.records, filters)
columns = project_headers(store.headers)
metrics = store.metrics


def render_kpi_tiles():
    cols = st.columns(4)
    tiles = [
        ("Total contracts", metrics.total, StatusFilter.ALL),
        ("In force", metrics.active, StatusFilter.IN_FORCE),
        ("Expired", metrics.expired, StatusFilter.EXPIRED),
        (f"Expiring ({EXPIRING_DAYS_LIMIT} days)", metrics.expiring_soon, StatusFilter.EXPIRING),
    ]
    for col, (label, value, target) in zip(cols, tiles):
        col.metric(label, f"{value:,}")
        col.button("View list", key=f"tile-{target.value}", on_click=go_to_contracts, args=(target,))


def render_dashboard():
    render_page_header("Overview", "Contracts / Dashboard")
    render_kpi_tiles()
    c1, c2 = st.columns(2)
    with c1:
        with card("Contracts by status"):
            if metrics.status_counts:
                st.altair_chart(status_chart(metrics.status_counts), use_container_width=True)
            else:
                st.info("No contracts loaded.")
    with c2:
        with card("Top org units"):
            top_units = top_org_units(metrics)
            if top_units:
                st.altair_chart(org_unit_chart(top_units), use_container_width=True)
            else:
                st.info("No contracts loaded.")

    expiring = filter_records(store.records, normalize_filters({"status": StatusFilter.EXPIRING}))
    with card(f"Expiring in the next {EXPIRING_DAYS_LIMIT} days"):
        if not expiring:
            st.success("No contracts expiring soon.")
        else:
            rows = []
            for r in expiring:
                c = classify(r)
                rows.append({"CONTRACT": get_val_any(r, CONTRACT_FIELD), "STATUS": c.status, "DAYS": c.days})
            st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


def render_record_form(form_key: str, record: Optional[dict] = None) -> Optional[dict]:
    fields = {}
    with st.form(form_key):
        for header in editable_headers(store.headers):
            label = f"{header.label} *" if is_required(header) else header.label
            fields[header.key] = st.text_input(label, value=(record or {}).get(header.key, ""), key=f"{form_key}-{header.key}")
        submitted = st.form_submit_button("Save")
    if not submitted:
        return None
    missing: List[str] = [h.label for h in editable_headers(store.headers) if is_required(h) and not fields[h.key].strip()]
    if missing:
        st.error(f"Required fields missing: {', '.join(missing)}")
        return None
    return fields


def render_contract_table(page_records: List[dict]):
    rows = []
    for r in page_records:
        c = classify(r, filters.expiring_days_limit)
        badge = days_badge(c.days, filters.expiring_days_limit)
        row = dict(zip([col.label for col in columns], project_row(r, columns)))
        row["STATUS"] = f"{ICON_GLYPHS[status_icon(c.status)]} {get_val_any(r, STATUS_FIELD) or '-'}"
        row["DAYS"] = badge.text if badge else ""
        rows.append(row)
    st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


def render_contracts():
    render_page_header(
        "Contracts",
        "Contracts / Browse",
        format_filter_summary(filters.query, filters.status, filters.org_unit),
    )
    c1, c2, c3 = st.columns([6, 2, 2])
    c1.caption(f"{len(filtered):,} contracts match the current filters.")
    c2.download_button("Export CSV", data=export_csv(filtered, store.headers), file_name=CSV_FILENAME, mime="text/csv")
    c3.download_button(
        "Export PDF",
        data=export_pdf(filtered, store.headers, status_label=STATUS_OPTIONS[filters.status], org_unit_label=filters.org_unit),
        file_name=PDF_FILENAME,
        mime="application/pdf",
    )

    page = paginate(filtered, filters.page, filters.page_size)
    if page.total_pages and page.page > page.total_pages:
        st.session_state["page"] = 1
        st.rerun()
    render_contract_table(page.items)

    p1, p2, p3 = st.columns([1, 2, 1])
    if p1.button("Previous", disabled=page.page <= 1):
        st.session_state["page"] = page.page - 1
        st.rerun()
    p2.markdown(f"Page {page.page if page.total_pages else 0} of {page.total_pages}")
    if p3.button("Next", disabled=page.page >= page.total_pages):
        st.session_state["page"] = page.page + 1
        st.rerun()

    with st.expander("New contract"):
        created = render_record_form("new-contract")
        if created is not None:
            store.create(created)
            st.success("Contract added (in memory only).")
            st.rerun()

    if not page.items:
        return
    labels = {r[ID_FIELD]: f"{get_val_any(r, CONTRACT_FIELD) or r[ID_FIELD]}" for r in page.items}
    selected_id = st.selectbox("Selected contract", options=list(labels.keys()), format_func=lambda i: labels[i])
    try:
        selected = store.get(selected_id)
    except RecordNotFound:
        st.warning("That contract is no longer available.")
        return

    with st.expander("Details", expanded=False):
        for header in store.headers:
            st.markdown(f"**{header.label}**: {selected.get(header.key) or '_not provided_'}")
    with st.expander("Edit contract"):
        updated = render_record_form(f"edit-{selected_id}", selected)
        if updated is not None:
            store.update(selected_id, updated)
            st.success("Contract updated (in memory only).")
            st.rerun()
    d1, d2 = st.columns([2, 8])
    confirmed = d2.checkbox("Confirm deletion", key=f"confirm-delete-{selected_id}")
    if d1.button("Delete contract", type="secondary", disabled=not confirmed):
        store.delete(selected_id)
        st.rerun()


if st.session_state["nav"] == "Dashboard":
    render_dashboard()
else:
    render_contracts()
