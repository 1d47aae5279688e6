from models.user import User
from models.refresh_token import RefreshToken
from models.species import Species
from models.tree import Tree
from models.health_record import HealthRecord
from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from models.base_model import Base

# Map model names for easy querying
classes = {
    "User": User,
    "RefreshToken": RefreshToken,
    "Species": Species,
    "Tree": Tree,
    "HealthRecord": HealthRecord,
}


class DBStorage:
    """Owns the engine and the scoped session; one instance per app."""

    __engine = None
    __session = None

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize engine from a SQLAlchemy URL"""
        options = {"echo": echo}
        if database_url.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                options["poolclass"] = StaticPool
        else:
            options["pool_pre_ping"] = True
        self.__engine = create_engine(database_url, **options)

        # Enable SQLite foreign keys (needed for ON DELETE RESTRICT/CASCADE)
        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def delete(self, obj=None):
        """Delete object if exists (hard delete)"""
        if obj is not None:
            self.__session.delete(obj)

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if cls in classes.values() and id:
            return self.__session.get(cls, id)
        return None

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    def drop_all(self):
        Base.metadata.drop_all(self.__engine)

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
