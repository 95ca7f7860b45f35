"""SQLAlchemy declarative Base shared by the user store models."""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Matches PostgreSQL's own default names so autogenerate stays quiet.
NAMING_CONVENTION = {
    "ix": "%(table_name)s_%(column_0_name)s_idx",
    "pk": "%(table_name)s_pkey",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
