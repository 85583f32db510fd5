"""ORM Models — SQLAlchemy declarative models for the persistence store.

Invariants:
    - All models inherit from Base (db/base.py)
    - All models imported here so Base.metadata is complete before create_all/autogenerate
"""

from crossapp.models.database_connection import DatabaseConnection  # noqa: F401
from crossapp.models.system_setting import SystemSetting  # noqa: F401
