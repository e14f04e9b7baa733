from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import requests


logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vQXh7kM4MOMUvCFR48_6bWI2O1R6NDHxtZd_GLgSZQ37d_tdkENncovOgXBlxY8fD9UmAoP4TRXc8DO/pub?output=csv"
)
SOURCE_URL = os.environ.get("CONTRACTS_CSV_URL", DEFAULT_SOURCE_URL)
FETCH_TIMEOUT_SECONDS = 30

# Export preamble: title, report date, spacer. Header follows, then data.
HEADER_ROW_INDEX = 3
DATA_START_INDEX = 4

UNTITLED_HEADER = "Untitled"
ID_FIELD = "_id"

ContractRecord = Dict[str, str]


class LoadError(RuntimeError):
    """The source document could not be fetched or had no usable body."""


@dataclass(frozen=True)
class HeaderDescriptor:
    key: str
    label: str


@dataclass(frozen=True)
class ParsedSheet:
    headers: List[HeaderDescriptor] = field(default_factory=list)
    records: List[ContractRecord] = field(default_factory=list)

    @property
    def keys(self) -> List[str]:
        return [h.key for h in self.headers]


# ---------------- Tokenizer ----------------
def parse_line(line: str) -> List[str]:
    """Split one CSV line into trimmed fields.

    A double quote toggles the quoted state and is never kept as content, so a
    comma only separates fields outside quotes. An unterminated quote swallows
    the rest of the line.
    """
    fields: List[str] = []
    in_quotes = False
    current: List[str] = []
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def dedupe_headers(raw_headers: Iterable[str]) -> List[str]:
    """Make header names unique: A,B,A,A -> A,B,A_1,A_2.

    A suffix that is already in use is skipped (A,A_1,A -> A,A_1,A_2), and the
    internal id key counts as taken so a sheet column can never shadow it.
    """
    keys: List[str] = []
    seen: Dict[str, int] = {}
    taken = {ID_FIELD}
    for raw in raw_headers:
        base = raw.strip() or UNTITLED_HEADER
        if base not in seen and base not in taken:
            key = base
            seen[base] = 1
        else:
            n = seen.get(base, 1)
            key = f"{base}_{n}"
            while key in taken:
                n += 1
                key = f"{base}_{n}"
            seen[base] = n + 1
        taken.add(key)
        keys.append(key)
    return keys


def parse_sheet(text: str) -> ParsedSheet:
    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) <= HEADER_ROW_INDEX:
        return ParsedSheet()

    keys = dedupe_headers(parse_line(lines[HEADER_ROW_INDEX]))
    headers = [HeaderDescriptor(key=k, label=k.upper()) for k in keys]

    records: List[ContractRecord] = []
    for idx in range(DATA_START_INDEX, len(lines)):
        row = parse_line(lines[idx])
        if not row:
            continue
        record = {key: (row[pos] if pos < len(row) else "") for pos, key in enumerate(keys)}
        if all(value == "" for value in record.values()):
            continue
        record[ID_FIELD] = f"row-{idx}"
        records.append(record)
    return ParsedSheet(headers=headers, records=records)


# ---------------- Field resolution ----------------
def _find_key(record: ContractRecord, key_part: str) -> Optional[str]:
    needle = key_part.upper()
    for key in record:
        if key == ID_FIELD:
            continue
        if needle in key.upper():
            return key
    return None


def get_val(record: ContractRecord, key_part: str) -> str:
    """Value of the first field (header order) whose name contains `key_part`, case-insensitive."""
    key = _find_key(record, key_part)
    return record[key] if key is not None else ""


def get_val_any(record: ContractRecord, key_parts: Iterable[str]) -> str:
    for part in key_parts:
        key = _find_key(record, part)
        if key is not None:
            return record[key]
    return ""


def field_values(record: ContractRecord) -> List[str]:
    return [str(v) for k, v in record.items() if k != ID_FIELD]


# ---------------- Loaders ----------------
def fetch_document(url: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> str:
    try:
        response = requests.get(url, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise LoadError(f"Failed to load spreadsheet: {exc}") from exc
    text = response.content.decode("utf-8-sig", errors="replace")
    if not text.strip():
        raise LoadError("Failed to load spreadsheet: empty response body")
    return text


def read_document(source: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> str:
    """Read the source CSV from a local path or an http(s) URL."""
    if not source.lower().startswith(("http://", "https://")):
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise LoadError(f"Failed to read spreadsheet file {path}: {exc}") from exc
        if not text.strip():
            raise LoadError(f"Spreadsheet file {path} is empty")
        return text
    return fetch_document(source, timeout=timeout)
