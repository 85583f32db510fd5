"""Core Layer — domain types, error hierarchy, pure helpers. No IO, no async.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic given their inputs
"""
