"""
Lesson and LessonSection models
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import (JSON, Boolean, Column, DateTime, ForeignKey, Integer,
                        String, Text, Uuid)
from sqlalchemy.orm import relationship

from quimica.core.database import Base


class SectionType(str, Enum):
    """What a lesson section points at"""
    CONTENT = "content"
    QUIZ = "quiz"
    MODEL = "model"


class Lesson(Base):
    """Top-level unit of instructional content"""
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    level = Column(String(50), nullable=True)
    thumbnail_url = Column(String(1024), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    sections = relationship(
        "LessonSection",
        back_populates="lesson",
        cascade="all, delete-orphan",
        order_by="LessonSection.order",
    )
    quizzes = relationship("Quiz", back_populates="lesson", cascade="all, delete-orphan")
    content_links = relationship("ContentLesson", back_populates="lesson", cascade="all, delete-orphan")
    progress = relationship("Progress", back_populates="lesson", cascade="all, delete-orphan")
    models = relationship("ARModel", back_populates="lesson")

    def __repr__(self):
        return f"<Lesson(id={self.id}, title={self.title})>"


class LessonSection(Base):
    """One ordered step of a lesson: a content block, a quiz or an AR model"""
    __tablename__ = "lesson_sections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column(Integer, nullable=False, default=0)
    section_type = Column(String(20), nullable=False, default=SectionType.CONTENT.value)
    content_id = Column(Integer, ForeignKey("contents.id", ondelete="SET NULL"), nullable=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="SET NULL"), nullable=True)
    model_id = Column(Integer, ForeignKey("ar_models.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=True)
    is_required = Column(Boolean, nullable=False, default=True)
    # Ids of sections of the same lesson that must be completed first
    requirements = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    lesson = relationship("Lesson", back_populates="sections")
    content = relationship("Content")
    quiz = relationship("Quiz")
    model = relationship("ARModel")
    progress = relationship("SectionProgress", back_populates="section", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<LessonSection(id={self.id}, lesson_id={self.lesson_id}, order={self.order})>"
