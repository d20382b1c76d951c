from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import relationship

from .base import Base, new_id


class Classroom(Base):
    __tablename__ = 'classroom'

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False, index=True)
    owner_user_id = Column(ForeignKey('app_user.id', ondelete='SET NULL'), index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default='active')
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    # Relationships
    members = relationship("ClassroomMember", back_populates="classroom", uselist=True, lazy="select")


class ClassroomMember(Base):
    __tablename__ = 'classroom_member'
    __table_args__ = (
        Index('classroom_member_classroom_user_key', 'classroom_id', 'user_id', unique=True),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    classroom_id = Column(ForeignKey('classroom.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(ForeignKey('app_user.id', ondelete='CASCADE'), nullable=False, index=True)
    joined_at = Column(DateTime(True), nullable=False, server_default=func.now())

    # Relationships
    classroom = relationship("Classroom", back_populates="members")
