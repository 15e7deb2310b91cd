"""
Content blocks and their links to lessons
"""
from datetime import datetime

from sqlalchemy import (JSON, Column, DateTime, ForeignKey, Integer, String,
                        Text, Uuid)
from sqlalchemy.orm import relationship

from quimica.core.database import Base


class Content(Base):
    """Titled block of material attached to one or more lessons"""
    __tablename__ = "contents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    body_html = Column(Text, nullable=True)
    order = Column(Integer, nullable=True)
    content_type = Column("type", String(50), nullable=True)
    author = Column(String(255), nullable=True)
    difficulty = Column(String(50), nullable=True)
    safety = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    resources = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    updated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    lesson_links = relationship(
        "ContentLesson",
        back_populates="content",
        cascade="all, delete-orphan",
        order_by="ContentLesson.order",
    )
    model_links = relationship(
        "ContentModel",
        back_populates="content",
        cascade="all, delete-orphan",
        order_by="ContentModel.order",
    )

    @property
    def lessons(self):
        """Linked lessons in link order"""
        return [link.lesson for link in self.lesson_links]

    def __repr__(self):
        return f"<Content(id={self.id}, title={self.title}, version={self.version})>"


class ContentLesson(Base):
    """Ordered many-to-many link between contents and lessons"""
    __tablename__ = "content_lessons"

    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), primary_key=True)
    order = Column(Integer, nullable=False, default=0)

    # Relationships
    content = relationship("Content", back_populates="lesson_links")
    lesson = relationship("Lesson", back_populates="content_links")

    def __repr__(self):
        return f"<ContentLesson(content_id={self.content_id}, lesson_id={self.lesson_id}, order={self.order})>"
