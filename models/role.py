"""
Role and UserRole models.

Roles are a small fixed set seeded by DBStorage.seed_roles(); UserRole is the
association object joining users to roles and is read when access tokens are
issued to embed the role claims.
"""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import Base

ADMIN_ROLE_ID = 1
USER_ROLE_ID = 2

DEFAULT_ROLES = {
    ADMIN_ROLE_ID: "Admin",
    USER_ROLE_ID: "User",
}


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(64), nullable=False, unique=True)

    user_roles = relationship("UserRole", back_populates="role")

    def __repr__(self):
        return f"<Role {self.id}:{self.name}>"


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="RESTRICT"), primary_key=True)

    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles", lazy="joined")

    def __repr__(self):
        return f"<UserRole user={self.user_id} role={self.role_id}>"
