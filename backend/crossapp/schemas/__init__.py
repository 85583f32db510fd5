"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary; services receive plain dicts or core types
    - Credentials in request bodies are SecretStr from the moment they are parsed
"""
