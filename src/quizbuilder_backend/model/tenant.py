from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import relationship

from .base import Base, new_id


class Tenant(Base):
    __tablename__ = 'tenant'

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    # Relationships
    users = relationship("AppUser", back_populates="tenant", uselist=True, lazy="select")


class AppUser(Base):
    __tablename__ = 'app_user'

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(ForeignKey('tenant.id', ondelete='CASCADE'), index=True)
    email = Column(String(320), unique=True)
    first_name = Column(String(255))
    last_name = Column(String(255))
    role = Column(String(32), nullable=False)
    plan_type = Column(String(32), nullable=False, default='basic')
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    # Relationships
    tenant = relationship("Tenant", back_populates="users")
