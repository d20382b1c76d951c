from sqlalchemy import Column, DateTime, String, func

from .base import Base, new_id


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), index=True)
    tenant_id = Column(String(36), index=True)
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(String(255))
    action = Column(String(64), nullable=False)
    result = Column(String(16), nullable=False)
    timestamp = Column(DateTime(True), nullable=False)
    user_agent = Column(String(1024))
    ip_address = Column(String(64))
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
