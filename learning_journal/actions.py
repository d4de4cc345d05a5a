# actions.py
"""
Journal and quiz lifecycle: create (upload -> model -> persist), read, grade, delete.

Every function takes an open session and the caller's user id; errors are
raised as learning_journal.errors.AppError subclasses and mapped to HTTP
responses in main.py.
"""
import json
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.orm import Session

from learning_journal import llm, models
from learning_journal.db import transaction, with_db_retry
from learning_journal.errors import ConflictError, GenerationError, NotFoundError, ValidationError
from learning_journal.parser import QuizParseError, parse_flashcard_text, parse_quiz_text
from learning_journal.schemas import EvaluatedResponse, ResponseIn
from learning_journal.utils import load_json_column

log = logging.getLogger(__name__)

MODE_QUIZ = "quiz"
MODE_FLASHCARDS = "flashcards"
TITLE_MAX_LEN = 100
PREVIEW_TITLE = "Generated Quiz"


# -----------------------------------------------------------------------------
# Generation (model call + parse)
# -----------------------------------------------------------------------------
def generate_questions(file_url: str) -> List[dict]:
    try:
        text = llm.generate_quiz_text(file_url)
        return parse_quiz_text(text)
    except (llm.LLMError, QuizParseError) as e:
        raise GenerationError(f"Failed to generate quiz: {e}")


def generate_flashcards(file_url: str) -> List[dict]:
    try:
        cards = parse_flashcard_text(llm.generate_flashcard_text(file_url))
    except llm.LLMError as e:
        raise GenerationError(f"Failed to generate flashcards: {e}")
    if not cards:
        raise GenerationError("Failed to generate flashcards: No valid flashcards generated")
    return cards


# -----------------------------------------------------------------------------
# Lookups
# -----------------------------------------------------------------------------
def ensure_user(db: Session, user_id: str) -> models.User:
    """Users normally arrive through the identity webhook; create a stub if it hasn't fired yet."""
    user = db.get(models.User, user_id)
    if user is None:
        user = models.User(user_id=user_id, email=f"unknown+{user_id}@example.com")
        db.add(user)
        db.flush()
    return user


def get_owned_journal(db: Session, user_id: str, journal_id: str) -> Optional[models.Journal]:
    return (
        db.query(models.Journal)
        .filter(models.Journal.id == journal_id, models.Journal.user_id == user_id)
        .first()
    )


def get_owned_quiz(db: Session, user_id: str, quiz_id: str) -> models.Quiz:
    quiz = (
        db.query(models.Quiz)
        .join(models.Journal, models.Quiz.journal_id == models.Journal.id)
        .filter(models.Quiz.id == quiz_id, models.Journal.user_id == user_id)
        .first()
    )
    if not quiz:
        raise NotFoundError("Quiz not found")
    return quiz


def list_journals(db: Session, user_id: str) -> List[models.Journal]:
    return (
        db.query(models.Journal)
        .filter(models.Journal.user_id == user_id)
        .order_by(models.Journal.last_modified.desc())
        .all()
    )


def get_journal(db: Session, user_id: str, journal_id: str) -> models.Journal:
    journal = get_owned_journal(db, user_id, journal_id)
    if not journal:
        raise NotFoundError("Journal not found")
    return journal


# -----------------------------------------------------------------------------
# Create
# -----------------------------------------------------------------------------
def create_journal(db: Session, user_id: str, form: dict) -> str:
    """
    Creates a journal with its document and generated study material.
    Returns the new journal id. The model is called before anything is written,
    and all rows are committed together.
    """
    title = (form.get("title") or "").strip()
    description = (form.get("description") or "").strip() or None
    file_url = form.get("fileUrl") or ""
    file_key = form.get("fileKey") or ""
    file_name = form.get("fileName") or ""
    mode = (form.get("mode") or MODE_QUIZ).strip().lower()

    try:
        file_size = int(float(form.get("fileSize")))
    except (TypeError, ValueError, OverflowError):
        file_size = None
    if file_size is not None and file_size < 0:
        file_size = None

    if not title or not file_url or not file_key or not file_name or file_size is None:
        raise ValidationError("Title and PDF are required")
    if len(title) > TITLE_MAX_LEN:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LEN} characters")
    if mode not in (MODE_QUIZ, MODE_FLASHCARDS):
        raise ValidationError(f"Unknown mode: {mode}")

    if mode == MODE_QUIZ:
        questions, cards = generate_questions(file_url), []
    else:
        questions, cards = None, generate_flashcards(file_url)

    now = datetime.utcnow()
    with transaction(db):
        ensure_user(db, user_id)
        journal = models.Journal(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            description=description,
            last_modified=now,
            created_at=now,
        )
        db.add(journal)
        db.add(models.Document(
            journal_id=journal.id,
            url=file_url,
            key=file_key,
            name=file_name,
            size=file_size,
            uploaded_at=now,
        ))
        if questions is not None:
            db.add(models.Quiz(journal_id=journal.id, questions=questions, created_at=now))
        for card in cards:
            db.add(models.Flashcard(journal_id=journal.id, question=card["question"], answer=card["answer"]))

    log.info("Created journal %s (%s) for user %s", journal.id, mode, user_id)
    return journal.id


def create_quiz(db: Session, file_url: str, journal_id: Optional[str] = None,
                user_id: Optional[str] = None) -> dict:
    """
    Generates a quiz for the PDF at `file_url`. With a journal id the quiz is
    stored on that journal (caller must own it); without one it is only returned.
    """
    if not file_url:
        raise ValidationError("fileUrl is required")

    if not journal_id:
        return {"id": str(uuid.uuid4()), "title": PREVIEW_TITLE, "questions": generate_questions(file_url)}

    journal = get_owned_journal(db, user_id, journal_id)
    if not journal:
        raise NotFoundError("Journal not found or you do not have permission to modify it.")

    questions = generate_questions(file_url)
    with transaction(db):
        quiz = models.Quiz(id=str(uuid.uuid4()), journal_id=journal.id, questions=questions)
        db.add(quiz)
        journal.last_modified = datetime.utcnow()

    return {"id": quiz.id, "title": journal.title, "questions": questions}


# -----------------------------------------------------------------------------
# Grade
# -----------------------------------------------------------------------------
def parse_responses(raw) -> List[ResponseIn]:
    """Accepts the JSON-encoded `responses` form field (or an already decoded list)."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError("Invalid quizId or responses data")
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Invalid quizId or responses data")
    try:
        return [ResponseIn(**r) for r in raw]
    except (PydanticValidationError, TypeError):
        raise ValidationError("Invalid quizId or responses data")


def grade_responses(questions: List[dict], responses: List[ResponseIn]):
    """
    Returns (correct_count, evaluated) where evaluated has one entry per quiz
    question, in quiz order. Responses for unknown questions are ignored.
    """
    question_ids = {q["id"] for q in questions}
    invalid = [r.questionId for r in responses if r.questionId not in question_ids]
    if invalid:
        log.warning("Invalid response question ids ignored: %s", invalid)

    by_question = {}
    for r in responses:
        by_question.setdefault(r.questionId, r)

    correct = 0
    evaluated = []
    for question in questions:
        response = by_question.get(question["id"])
        selected_text = ""
        if response is not None:
            for opt in question.get("options", []):
                if opt["id"] == response.selectedAnswer:
                    selected_text = opt["text"]
                    break
        is_correct = bool(selected_text) and selected_text.lower() == question["correct"].lower()
        if is_correct:
            correct += 1
        evaluated.append(EvaluatedResponse(
            questionId=question["id"], selectedAnswer=selected_text, isCorrect=is_correct,
        ).model_dump())
    return correct, evaluated


@with_db_retry
def _save_grade(db: Session, quiz_id: str, version: int, user_id: str,
                score: int, total: int, evaluated: List[dict]) -> None:
    with transaction(db):
        result = db.execute(
            update(models.Quiz)
            .where(models.Quiz.id == quiz_id, models.Quiz.version == version)
            .values(
                user_id=user_id,
                score=score,
                total_questions=total,
                responses=evaluated,
                version=version + 1,
                graded_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            raise ConflictError("Quiz was modified by another submission; reload and try again")


def submit_quiz(db: Session, user_id: str, quiz_id: Optional[str], raw_responses) -> dict:
    if not quiz_id:
        raise ValidationError("Invalid quizId or responses data")
    responses = parse_responses(raw_responses)

    quiz = db.get(models.Quiz, quiz_id)
    if not quiz:
        raise NotFoundError("Quiz not found")

    questions = load_json_column(quiz.questions, [])
    score, evaluated = grade_responses(questions, responses)
    _save_grade(db, quiz.id, quiz.version, user_id, score, len(questions), evaluated)
    log.info("Graded quiz %s: %d/%d", quiz.id, score, len(questions))

    return {"success": True, "score": score, "totalQuestions": len(questions)}


# -----------------------------------------------------------------------------
# Delete
# -----------------------------------------------------------------------------
def delete_journal(db: Session, user_id: str, journal_id: str) -> None:
    journal = get_owned_journal(db, user_id, journal_id)
    if not journal:
        raise NotFoundError("Journal not found or you do not have permission to delete it.")

    with transaction(db):
        db.query(models.Quiz).filter(models.Quiz.journal_id == journal_id).delete(synchronize_session=False)
        db.query(models.Flashcard).filter(models.Flashcard.journal_id == journal_id).delete(synchronize_session=False)
        db.query(models.Document).filter(models.Document.journal_id == journal_id).delete(synchronize_session=False)
        db.query(models.Journal).filter(models.Journal.id == journal_id).delete(synchronize_session=False)
    log.info("Deleted journal %s for user %s", journal_id, user_id)


# -----------------------------------------------------------------------------
# Flashcards
# -----------------------------------------------------------------------------
def review_flashcard(db: Session, user_id: str, flashcard_id: str) -> models.Flashcard:
    card = (
        db.query(models.Flashcard)
        .join(models.Journal, models.Flashcard.journal_id == models.Journal.id)
        .filter(models.Flashcard.id == flashcard_id, models.Journal.user_id == user_id)
        .first()
    )
    if not card:
        raise NotFoundError("Flashcard not found")
    with transaction(db):
        card.last_reviewed = datetime.utcnow()
    return card
