"""
Augmented-reality 3D models and their links to contents
"""
from datetime import datetime

from sqlalchemy import (JSON, Boolean, Column, DateTime, ForeignKey, Integer,
                        String, Text, Uuid)
from sqlalchemy.orm import relationship

from quimica.core.database import Base


class ARModel(Base):
    """A 3D model file referenced by URL"""
    __tablename__ = "ar_models"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    file_url = Column(String(1024), nullable=False)
    model_type = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    keywords = Column(JSON, nullable=False, default=list)
    molecule_formula = Column(String(100), nullable=True)
    category = Column(String(100), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    lesson = relationship("Lesson", back_populates="models")
    content_links = relationship("ContentModel", back_populates="model", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ARModel(id={self.id}, name={self.name})>"


class ContentModel(Base):
    """Ordered link between a content block and a 3D model"""
    __tablename__ = "content_models"

    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True)
    model_id = Column(Integer, ForeignKey("ar_models.id", ondelete="CASCADE"), primary_key=True)
    order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)

    # Relationships
    content = relationship("Content", back_populates="model_links")
    model = relationship("ARModel", back_populates="content_links")
