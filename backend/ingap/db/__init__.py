"""Database utilities and models."""

from ingap.db.base import Base
from ingap.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
