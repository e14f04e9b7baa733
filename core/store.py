from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Dict, List, Mapping, Optional

from core.data import (
    ID_FIELD,
    SOURCE_URL,
    ContractRecord,
    HeaderDescriptor,
    LoadError,
    ParsedSheet,
    parse_sheet,
    read_document,
)
from core.metrics_overview import MetricsSnapshot, compute_metrics


logger = logging.getLogger(__name__)

STATE_UNLOADED = "unloaded"
STATE_LOADED = "loaded"
STATE_ERRORED = "errored"


class RecordNotFound(KeyError):
    """No record with the given id in the current dataset."""


def _as_text(value: object) -> str:
    return "" if value is None else str(value)


class ContractStore:
    """In-memory contract dataset built from one source document.

    Mutations only touch memory; reloading the source rebuilds everything.
    """

    def __init__(self, source: str = SOURCE_URL) -> None:
        self.source = source
        self.state = STATE_UNLOADED
        self.error: Optional[str] = None
        self._sheet = ParsedSheet()
        self._metrics: Optional[MetricsSnapshot] = None

    @property
    def headers(self) -> List[HeaderDescriptor]:
        return self._sheet.headers

    @property
    def records(self) -> List[ContractRecord]:
        return self._sheet.records

    @property
    def metrics(self) -> MetricsSnapshot:
        if self._metrics is None:
            self._metrics = compute_metrics(self.records)
        return self._metrics

    def load(self) -> "ContractStore":
        try:
            text = read_document(self.source)
        except LoadError as exc:
            logger.warning("Contract source load failed (%s): %s", self.source, exc)
            self.state = STATE_ERRORED
            self.error = str(exc)
            return self
        return self.load_text(text)

    reload = load

    def load_text(self, text: str) -> "ContractStore":
        sheet = parse_sheet(text)
        # Swap in one step so readers never see a half-built dataset.
        self._sheet = sheet
        self._metrics = None
        self.state = STATE_LOADED
        self.error = None
        logger.info("Loaded %d contracts with %d columns from %s", len(sheet.records), len(sheet.headers), self.source)
        return self

    def _touch(self) -> None:
        self._metrics = None

    def _index_of(self, record_id: str) -> int:
        for idx, record in enumerate(self.records):
            if record.get(ID_FIELD) == record_id:
                return idx
        raise RecordNotFound(record_id)

    def _new_id(self) -> str:
        existing = {r.get(ID_FIELD) for r in self.records}
        stamp = int(time.time() * 1000)
        while f"new-{stamp}" in existing:
            stamp += 1
        return f"new-{stamp}"

    def get(self, record_id: str) -> ContractRecord:
        return self.records[self._index_of(record_id)]

    def create(self, fields: Mapping[str, object]) -> ContractRecord:
        record: Dict[str, str] = {k: _as_text(fields.get(k)) for k in self._sheet.keys}
        record[ID_FIELD] = self._new_id()
        self.records.insert(0, record)
        self._touch()
        logger.debug("Created contract %s", record[ID_FIELD])
        return record

    def update(self, record_id: str, fields: Mapping[str, object]) -> ContractRecord:
        idx = self._index_of(record_id)
        known = set(self._sheet.keys)
        updated = dict(self.records[idx])
        updated.update({k: _as_text(v) for k, v in fields.items() if k in known})
        self.records[idx] = updated
        self._touch()
        logger.debug("Updated contract %s", record_id)
        return updated

    def delete(self, record_id: str) -> None:
        idx = self._index_of(record_id)
        del self.records[idx]
        self._touch()
        logger.debug("Deleted contract %s", record_id)


@lru_cache(maxsize=1)
def get_store() -> ContractStore:
    return ContractStore(SOURCE_URL).load()
