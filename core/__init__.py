"""Core (UI-agnostic) dashboard logic.

This package contains:
- page descriptors (field mapping, filters, chart type per dataset page)
- data loading (CSV -> pandas) and derived-field coercion
- filter state, scales, view transform and the keyed render cycle
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- session state and the event dispatcher used by the UI adapters
"""
