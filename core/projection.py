"""Fixed column selection shared by the contract table and both exports."""

from __future__ import annotations

from typing import Iterable, List, Sequence

import pandas as pd

from core.data import ContractRecord, HeaderDescriptor


# 1-based sheet columns D, E, F, G, I, L.
PROJECTION_POSITIONS = (4, 5, 6, 7, 9, 12)
PROJECTION_LABELS = ("CONTRACT", "ORG-UNIT", "SUBJECT", "SUPPLIER", "EXPIRY", "STATUS")
EXPIRY_LABEL = "EXPIRY"

_AUXILIARY_KEYS = {"N°", "Nº", "N", "ANO"}
_AUXILIARY_FRAGMENTS = (
    "UNTITLED",
    "INÍCIO",
    "INICIO",
    "FALTANTES",
    "P/ VENCER",
    "POSSIBILIDADE DE RENOVAÇÃO",
    "OBSERVAÇÃO",
)
_REQUIRED_FRAGMENTS = ("CONTRATO", "SITUAÇÃO", "SITUACAO")


def project_headers(headers: Sequence[HeaderDescriptor]) -> List[HeaderDescriptor]:
    """Pick the display columns by sheet position; missing positions are skipped."""
    out: List[HeaderDescriptor] = []
    for pos, label in zip(PROJECTION_POSITIONS, PROJECTION_LABELS):
        idx = pos - 1
        if idx < len(headers):
            out.append(HeaderDescriptor(key=headers[idx].key, label=label))
    return out


def project_row(record: ContractRecord, columns: Sequence[HeaderDescriptor]) -> List[str]:
    return [str(record.get(col.key, "")) for col in columns]


def project_rows(records: Iterable[ContractRecord], columns: Sequence[HeaderDescriptor]) -> List[List[str]]:
    return [project_row(r, columns) for r in records]


def projection_frame(records: Iterable[ContractRecord], headers: Sequence[HeaderDescriptor]) -> pd.DataFrame:
    columns = project_headers(headers)
    return pd.DataFrame(project_rows(records, columns), columns=[c.label for c in columns])


def is_auxiliary(header: HeaderDescriptor) -> bool:
    key = header.key.strip().upper()
    return key in _AUXILIARY_KEYS or any(f in key for f in _AUXILIARY_FRAGMENTS)


def editable_headers(headers: Iterable[HeaderDescriptor]) -> List[HeaderDescriptor]:
    return [h for h in headers if not is_auxiliary(h)]


def is_required(header: HeaderDescriptor) -> bool:
    key = header.key.upper()
    return any(f in key for f in _REQUIRED_FRAGMENTS)
