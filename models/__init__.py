"""SQLAlchemy models and the DBStorage persistence wrapper."""
from models.db_storage import DBStorage

__all__ = ["DBStorage"]
