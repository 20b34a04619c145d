"""Database package"""

from quotedesk.db.session import AsyncSessionLocal, engine, get_db
from quotedesk.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
