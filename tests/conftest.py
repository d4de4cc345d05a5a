import base64
import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="learning-journal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["GOOGLE_API_KEY"] = "test-key"
os.environ["AUTH_JWT_KEY"] = "test-jwt-secret"
os.environ["AUTH_JWT_ALGORITHM"] = "HS256"
os.environ["WEBHOOK_SIGNING_SECRET"] = "whsec_" + base64.b64encode(b"test-webhook-signing-secret!").decode()
os.environ["UPLOAD_DIR"] = os.path.join(_tmp, "uploads")
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["DB_RETRY_ATTEMPTS"] = "3"
os.environ["DB_RETRY_DELAY"] = "0"

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from learning_journal import llm, models
from learning_journal.db import Base, SessionLocal
from learning_journal.main import app

QUIZ_TEXT = """Here is your quiz.

**Question 1**
Text: What is the capital of France?
Options: Paris, Rome, Berlin, Madrid
Correct: Paris

**Question 2**
Text: Which planet is known as the red planet?
Options: Venus, Mars, Jupiter, Saturn
Correct: Mars
"""

FLASHCARD_TEXT = """**Flashcard 1**
Question: What is photosynthesis?
Answer: Turning light into chemical energy.

**Flashcard 2**
Question: Where does it happen?
Answer: In chloroplasts.
"""


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with SessionLocal() as db:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, "test-jwt-secret", algorithm="HS256")


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def alice():
    return auth_headers("user_alice")


@pytest.fixture
def bob():
    return auth_headers("user_bob")


@pytest.fixture
def fake_llm(monkeypatch):
    """Replaces the model calls; returns a dict whose values tests may change."""
    calls = {"quiz": QUIZ_TEXT, "flashcards": FLASHCARD_TEXT, "urls": []}

    def quiz_text(url):
        calls["urls"].append(url)
        return calls["quiz"]

    def flashcard_text(url):
        calls["urls"].append(url)
        return calls["flashcards"]

    monkeypatch.setattr(llm, "generate_quiz_text", quiz_text)
    monkeypatch.setattr(llm, "generate_flashcard_text", flashcard_text)
    return calls


def seed_journal(db, user_id="user_alice", questions=None, with_flashcard=False):
    """Inserts a user, journal, document and quiz directly; returns (journal_id, quiz_id)."""
    if db.get(models.User, user_id) is None:
        db.add(models.User(user_id=user_id, email=f"{user_id}@example.com"))
    journal = models.Journal(user_id=user_id, title="Geography")
    db.add(journal)
    db.flush()
    db.add(models.Document(journal_id=journal.id, url="http://testserver/files/a.pdf",
                           key="a.pdf", name="a.pdf", size=10))
    quiz = models.Quiz(journal_id=journal.id, questions=questions if questions is not None else [
        {
            "id": "q1",
            "text": "Capital of France?",
            "options": [{"id": "o1", "text": "Paris"}, {"id": "o2", "text": "Rome"},
                        {"id": "o3", "text": "Berlin"}, {"id": "o4", "text": "Madrid"}],
            "correct": "Paris",
        }
    ])
    db.add(quiz)
    if with_flashcard:
        db.add(models.Flashcard(journal_id=journal.id, question="Q?", answer="A"))
    db.commit()
    return journal.id, quiz.id


def journal_form(**overrides):
    form = {
        "title": "Biology notes",
        "description": "Chapter 3",
        "fileUrl": "http://testserver/files/bio.pdf",
        "fileKey": "bio.pdf",
        "fileName": "bio.pdf",
        "fileSize": "2048",
    }
    form.update(overrides)
    return form
