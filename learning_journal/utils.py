# utils.py
import json


def load_json_column(value, default=None):
    """JSON columns may hold the value itself or a JSON-encoded string of it."""
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            return default
    return value if value is not None else default


def iso(dt):
    return dt.isoformat() if dt else None


def journal_row(j) -> dict:
    return {
        "id": j.id,
        "title": j.title,
        "description": j.description,
        "lastModified": iso(j.last_modified),
        "createdAt": iso(j.created_at),
    }


def document_out(d) -> dict:
    return {
        "id": d.id,
        "url": d.url,
        "key": d.key,
        "name": d.name,
        "size": d.size,
        "uploadedAt": iso(d.uploaded_at),
    }


def flashcard_out(f) -> dict:
    return {
        "id": f.id,
        "question": f.question,
        "answer": f.answer,
        "lastReviewed": iso(f.last_reviewed),
    }


def quiz_summary(q) -> dict:
    questions = load_json_column(q.questions, [])
    return {
        "id": q.id,
        "questionCount": len(questions),
        "graded": q.score is not None,
        "score": q.score,
        "totalQuestions": q.total_questions,
        "createdAt": iso(q.created_at),
    }


def quiz_view(q) -> dict:
    return {
        "id": q.id,
        "journalId": q.journal_id,
        "questions": load_json_column(q.questions, []),
        "score": q.score,
        "totalQuestions": q.total_questions,
        "responses": load_json_column(q.responses),
    }


def quiz_results(q) -> dict:
    """Per-question review of a graded (or ungraded) quiz."""
    questions = load_json_column(q.questions, [])
    responses = load_json_column(q.responses, [])
    by_question = {r.get("questionId"): r for r in responses if isinstance(r, dict)}

    results = []
    for question in questions:
        r = by_question.get(question["id"])
        results.append({
            "questionId": question["id"],
            "text": question["text"],
            "correctAnswer": question["correct"],
            "selectedAnswer": r.get("selectedAnswer") if r else None,
            "isCorrect": bool(r and r.get("isCorrect")),
            "answered": bool(r and r.get("selectedAnswer")),
        })

    return {
        "id": q.id,
        "journalId": q.journal_id,
        "score": q.score or 0,
        "totalQuestions": q.total_questions if q.total_questions is not None else len(questions),
        "results": results,
    }
