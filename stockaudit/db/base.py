"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from stockaudit.models import audit as _audit  # noqa: E402,F401
from stockaudit.models import inventory as _inventory  # noqa: E402,F401
from stockaudit.models import ledger as _ledger  # noqa: E402,F401
from stockaudit.models import user as _user  # noqa: E402,F401
