from sqlalchemy import Column, DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import relationship

from .base import Base, new_id


class QuizBlueprint(Base):
    __tablename__ = 'quiz_blueprint'

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False, index=True)
    owner_user_id = Column(ForeignKey('app_user.id', ondelete='SET NULL'), index=True)
    title = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default='draft')
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    # Relationships
    attempts = relationship("QuizAttempt", back_populates="quiz", uselist=True, lazy="select",
                            cascade="all, delete-orphan")


class QuizAttempt(Base):
    __tablename__ = 'quiz_attempt'

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False, index=True)
    quiz_id = Column(ForeignKey('quiz_blueprint.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(ForeignKey('app_user.id', ondelete='CASCADE'), nullable=False, index=True)
    score = Column(Float)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    # Relationships
    quiz = relationship("QuizBlueprint", back_populates="attempts")
