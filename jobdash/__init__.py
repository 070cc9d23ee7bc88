"""Core (UI-agnostic) cross-filter logic for the AI job market dashboard.

This package contains:
- record normalization (raw CSV rows -> immutable records)
- the shared filter state store
- the visibility predicate (cross-filter engine)
- aggregation helpers for legends and detail tables
- the selection-toggle protocol used by the views
- view payloads (JSON-serializable) and chart helpers (Altair -> Vega-Lite spec dict)
"""
