# models.py
import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from learning_journal.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(256), primary_key=True, index=True)   # identity-provider id
    username = Column(String(100))
    email = Column(String(256), unique=True, nullable=False)
    profile_image_url = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = Column(DateTime)

    journals = relationship("Journal", back_populates="user", cascade="all, delete-orphan")


class Journal(Base):
    __tablename__ = "journals"

    id = Column(String(256), primary_key=True, default=_uuid)
    user_id = Column(String(256), ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text)
    last_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="journals")
    document = relationship("Document", back_populates="journal", uselist=False, passive_deletes=True)
    quizzes = relationship("Quiz", back_populates="journal", passive_deletes=True,
                           order_by="Quiz.created_at")
    flashcards = relationship("Flashcard", back_populates="journal", passive_deletes=True,
                              order_by="Flashcard.created_at")


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(256), primary_key=True, default=_uuid)
    journal_id = Column(String(256), ForeignKey("journals.id", ondelete="CASCADE"), index=True, nullable=False)
    url = Column(Text, nullable=False)
    key = Column(Text, nullable=False)
    name = Column(String(256), nullable=False)
    size = Column(Integer)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    journal = relationship("Journal", back_populates="document")


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String(256), primary_key=True, default=_uuid)
    journal_id = Column(String(256), ForeignKey("journals.id", ondelete="CASCADE"), index=True, nullable=False)
    questions = Column(JSON, nullable=False)   # [{id, text, options: [{id, text}], correct}]
    # grading result; all NULL until the quiz is taken
    user_id = Column(String(256))
    score = Column(Integer)
    total_questions = Column(Integer)
    responses = Column(JSON)                   # [{questionId, selectedAnswer, isCorrect}]
    version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    graded_at = Column(DateTime)

    journal = relationship("Journal", back_populates="quizzes")


class Flashcard(Base):
    __tablename__ = "flashcards"

    id = Column(String(256), primary_key=True, default=_uuid)
    journal_id = Column(String(256), ForeignKey("journals.id", ondelete="CASCADE"), index=True, nullable=False)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    last_reviewed = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    journal = relationship("Journal", back_populates="flashcards")
