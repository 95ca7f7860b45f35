"""ORM model for user accounts (auth and RBAC)."""

from sqlalchemy import Column, Integer, String, UniqueConstraint

from app.core.security import split_roles
from app.models.base import Base


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    roles: comma-delimited subset of USER, ADMIN (may be empty).
    version: optimistic-lock counter; a stale update raises StaleDataError.
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("name", name="constraint_unique_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(31), nullable=False)
    password = Column(String(255), nullable=False)
    roles = Column(String(511), nullable=False, default="")
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def role_list(self) -> list[str]:
        return split_roles(self.roles)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, roles={self.roles!r})"
