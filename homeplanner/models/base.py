from datetime import datetime, UTC
from typing import Any
from uuid import uuid4
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, declared_attr

# Constraint naming convention shared by every table
convention = {
    "ix": "ix_%(column_0_label)s",  # Index
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # Unique constraint
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # Check constraint
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # Foreign key
    "pk": "pk_%(table_name)s"  # Primary key
}

metadata = MetaData(naming_convention=convention)

def utcnow() -> datetime:
    return datetime.now(UTC)

def new_id() -> str:
    """Opaque identifier used for every primary key."""
    return str(uuid4())

class Base(DeclarativeBase):
    """Base class for all database models."""
    metadata = metadata

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate __tablename__ automatically from class name."""
        return cls.__name__.lower()

    def dict(self) -> dict[str, Any]:
        """Convert model instance to dictionary."""
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }
