"""Core (UI-agnostic) contract dashboard logic.

This package contains:
- sheet parsing (CSV export -> headers + records) and field resolution
- status / expiry classification
- filter normalization, record filtering and pagination
- metrics and chart helpers (Altair -> Vega-Lite spec dict)
- column projection and CSV/PDF export
- the in-memory contract store
"""
