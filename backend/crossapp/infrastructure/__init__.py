"""Infrastructure Layer — backend SDK clients, persistence store, logging, secrets.

Invariants:
    - Infrastructure never imports from services/
    - All external calls wrapped with error mapping to core/errors.py
"""
