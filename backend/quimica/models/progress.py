"""
Per-lesson and per-section student progress
"""
from datetime import datetime

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer,
                        UniqueConstraint, Uuid)
from sqlalchemy.orm import relationship

from quimica.core.database import Base


class Progress(Base):
    """A student's completion state and best score for a lesson"""
    __tablename__ = "progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    last_access = Column(DateTime, nullable=True, default=datetime.utcnow)
    score = Column(Integer, nullable=True, default=0)

    # Relationships
    user = relationship("User", back_populates="progress")
    lesson = relationship("Lesson", back_populates="progress")

    def __repr__(self):
        return f"<Progress(user_id={self.user_id}, lesson_id={self.lesson_id}, completed={self.completed})>"


class SectionProgress(Base):
    """A student's progress through one lesson section"""
    __tablename__ = "section_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "section_id", name="uq_section_progress_user_section"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id = Column(Integer, ForeignKey("lesson_sections.id", ondelete="CASCADE"), nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    score = Column(Integer, nullable=True)
    # Seconds
    time_spent = Column(Integer, nullable=False, default=0)
    attempts = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="section_progress")
    section = relationship("LessonSection", back_populates="progress")
