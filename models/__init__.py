"""Persistence layer: SQLAlchemy models and the DBStorage wrapper."""
from models.db_storage import DBStorage, classes

__all__ = ["DBStorage", "classes"]
