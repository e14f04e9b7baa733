from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import ContractFieldsModel, ContractFiltersModel, ContractPageModel
from core.data import ID_FIELD, ContractRecord
from core.export import CSV_FILENAME, PDF_FILENAME, export_csv, export_pdf
from core.filters import ContractFilters, filter_records, normalize_filters, org_unit_options, paginate
from core.metrics_overview import compute_overview
from core.projection import editable_headers, project_headers, project_row
from core.status import classify, days_badge
from core.store import STATE_ERRORED, ContractStore, RecordNotFound, get_store


app = FastAPI(title="Contracts Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: ContractFiltersModel) -> ContractFilters:
    return normalize_filters(model.model_dump())


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _not_found(record_id: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Contract {record_id} not found", "type": "RecordNotFound"})


def _headers_payload(headers) -> list[dict]:
    return [{"key": h.key, "label": h.label} for h in headers]


def _row_payload(record: ContractRecord, columns, limit: int) -> dict:
    c = classify(record, limit)
    badge = days_badge(c.days, limit)
    return {
        "id": record.get(ID_FIELD, ""),
        "cells": project_row(record, columns),
        "status": c.status,
        "category": c.category.value,
        "days_badge": {"kind": badge.kind, "days": badge.days, "text": badge.text} if badge else None,
        "record": record,
    }


def _filtered(store: ContractStore, filters: ContractFiltersModel) -> tuple[ContractFilters, list[ContractRecord]]:
    f = _filters_from_model(filters)
    return f, filter_records(store.records, f)


@app.get("/meta/status")
def meta_status():
    try:
        store = get_store()
        return _json({"state": store.state, "error": store.error, "records": len(store.records), "source": store.source})
    except Exception as exc:
        logger.exception("meta_status failed")
        return _error(exc)


@app.get("/meta/headers")
def meta_headers():
    try:
        store = get_store()
        return _json(
            {
                "headers": _headers_payload(store.headers),
                "columns": _headers_payload(project_headers(store.headers)),
                "editable": _headers_payload(editable_headers(store.headers)),
            }
        )
    except Exception as exc:
        logger.exception("meta_headers failed")
        return _error(exc)


@app.get("/meta/org-units")
def meta_org_units():
    try:
        store = get_store()
        return _json({"org_units": org_unit_options(store.records)})
    except Exception as exc:
        logger.exception("meta_org_units failed")
        return _error(exc)


@app.post("/reload")
def reload():
    try:
        store = get_store().reload()
        if store.state == STATE_ERRORED:
            return _json({"state": store.state, "error": store.error, "type": "LoadError"}, status_code=502)
        return _json({"state": store.state, "records": len(store.records)})
    except Exception as exc:
        logger.exception("reload failed")
        return _error(exc)


@app.post("/overview")
def overview():
    try:
        store = get_store()
        payload = compute_overview(store.metrics)
        payload["state"] = store.state
        payload["error"] = store.error
        return _json(payload)
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/contracts", response_model=ContractPageModel)
def contracts(filters: ContractFiltersModel):
    try:
        store = get_store()
        f, rows = _filtered(store, filters)
        page = paginate(rows, f.page, f.page_size)
        columns = project_headers(store.headers)
        return _json(
            {
                "columns": _headers_payload(columns),
                "items": [_row_payload(r, columns, f.expiring_days_limit) for r in page.items],
                "page": page.page,
                "page_size": page.page_size,
                "total_items": page.total_items,
                "total_pages": page.total_pages,
            }
        )
    except Exception as exc:
        logger.exception("contracts failed")
        return _error(exc)


@app.post("/contracts/new")
def create_contract(body: ContractFieldsModel):
    try:
        record = get_store().create(body.fields)
        return _json(record, status_code=201)
    except Exception as exc:
        logger.exception("create_contract failed")
        return _error(exc)


@app.get("/contracts/{record_id}")
def get_contract(record_id: str):
    try:
        return _json(get_store().get(record_id))
    except RecordNotFound:
        return _not_found(record_id)
    except Exception as exc:
        logger.exception("get_contract failed")
        return _error(exc)


@app.put("/contracts/{record_id}")
def update_contract(record_id: str, body: ContractFieldsModel):
    try:
        return _json(get_store().update(record_id, body.fields))
    except RecordNotFound:
        return _not_found(record_id)
    except Exception as exc:
        logger.exception("update_contract failed")
        return _error(exc)


@app.delete("/contracts/{record_id}")
def delete_contract(record_id: str):
    try:
        get_store().delete(record_id)
        return _json({"deleted": record_id})
    except RecordNotFound:
        return _not_found(record_id)
    except Exception as exc:
        logger.exception("delete_contract failed")
        return _error(exc)


@app.post("/export/{fmt}")
def export(fmt: str, filters: ContractFiltersModel):
    try:
        store = get_store()
        f, rows = _filtered(store, filters)
        if fmt == "csv":
            content = export_csv(rows, store.headers)
            media_type, filename = "text/csv", CSV_FILENAME
        elif fmt == "pdf":
            content = export_pdf(rows, store.headers, status_label=f.status.value, org_unit_label=f.org_unit)
            media_type, filename = "application/pdf", PDF_FILENAME
        else:
            return JSONResponse(status_code=404, content={"error": f"Unknown export format {fmt}", "type": "ValueError"})
        return Response(content=content, media_type=media_type, headers={"Content-Disposition": f"attachment; filename={filename}"})
    except Exception as exc:
        logger.exception("export failed")
        return _error(exc)
