"""
Quiz, Question, Answer and QuizResult models
"""
from datetime import datetime

from sqlalchemy import (JSON, Boolean, Column, DateTime, ForeignKey, Integer,
                        String, Text, Uuid)
from sqlalchemy.orm import relationship

from quimica.core.database import Base


class Quiz(Base):
    """Timed assessment tied to a lesson"""
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    # Minutes; None means untimed
    time_limit = Column(Integer, nullable=True)
    # Percentage; None falls back to the configured default
    passing_score = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    lesson = relationship("Lesson", back_populates="quizzes")
    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    results = relationship("QuizResult", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, lesson_id={self.lesson_id})>"


class Question(Base):
    """A question inside a quiz"""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    question_type = Column(String(50), nullable=False, default="multiple_choice")
    order = Column(Integer, nullable=False, default=0)

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")
    answers = relationship(
        "Answer",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Answer.order",
    )


class Answer(Base):
    """One selectable answer of a question"""
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)

    # Relationships
    question = relationship("Question", back_populates="answers")


class QuizResult(Base):
    """A student's quiz attempt; completed_at is None while the attempt is running"""
    __tablename__ = "quiz_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Percentage of correct answers
    score = Column(Integer, nullable=True)
    # Number of questions
    total = Column(Integer, nullable=True)
    passed = Column(Boolean, nullable=True)
    # Seconds
    time_spent = Column(Integer, nullable=True)
    answers = Column(JSON, nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=True)
    completed_at = Column(DateTime, nullable=True, index=True)

    # Relationships
    quiz = relationship("Quiz", back_populates="results")
    user = relationship("User", back_populates="results")

    @property
    def is_submitted(self) -> bool:
        return self.completed_at is not None

    def __repr__(self):
        return f"<QuizResult(id={self.id}, quiz_id={self.quiz_id}, user_id={self.user_id}, score={self.score})>"
