# main.py
import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from learning_journal.db import Base, engine, get_db
from learning_journal import actions, llm, models, schemas, uploads, webhooks
from learning_journal.auth import optional_user, require_user
from learning_journal.errors import AppError, AuthError
from learning_journal.utils import (
    document_out,
    flashcard_out,
    journal_row,
    quiz_results,
    quiz_summary,
    quiz_view,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)s  %(name)s  %(message)s")
log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# App & CORS
# -----------------------------------------------------------------------------
app = FastAPI(title="AI Learning Journal")

origins_env = os.getenv("ORIGINS", "").strip()
origins = [o.strip() for o in origins_env.split(",") if o.strip()] or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables at startup
Base.metadata.create_all(bind=engine)

os.makedirs(uploads.UPLOAD_DIR, exist_ok=True)
app.mount(uploads.FILES_ROUTE, StaticFiles(directory=uploads.UPLOAD_DIR), name="files")


# -----------------------------------------------------------------------------
# Errors: the client always gets {"error": message}
# -----------------------------------------------------------------------------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def all_exception_handler(request: Request, exc: Exception):
    log.exception(exc)
    return JSONResponse(status_code=500, content={"error": "server_error"})


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/llm-test")
def llm_test():
    return llm.ping_llm()


# -----------------------------------------------------------------------------
# Uploads
# -----------------------------------------------------------------------------
@app.post("/api/uploads", response_model=schemas.UploadOut)
def upload_pdf(file: UploadFile = File(...), user_id: str = Depends(require_user)):
    meta = uploads.save_pdf(file)
    log.info("Upload completed for user %s: %s", user_id, meta["url"])
    return meta


# -----------------------------------------------------------------------------
# Quiz generation
# -----------------------------------------------------------------------------
@app.post("/api/quiz", response_model=schemas.QuizOut)
def generate_quiz(
    fileUrl: Optional[str] = Form(None),
    journalId: Optional[str] = Form(None),
    user_id: Optional[str] = Depends(optional_user),
    db: Session = Depends(get_db),
):
    if journalId and not user_id:
        raise AuthError("User not authenticated")
    return actions.create_quiz(db, fileUrl, journal_id=journalId, user_id=user_id)


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------
@app.post("/api/actions/create-journal")
def create_journal(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    fileUrl: Optional[str] = Form(None),
    fileKey: Optional[str] = Form(None),
    fileName: Optional[str] = Form(None),
    fileSize: Optional[str] = Form(None),
    mode: Optional[str] = Form(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    journal_id = actions.create_journal(db, user_id, {
        "title": title,
        "description": description,
        "fileUrl": fileUrl,
        "fileKey": fileKey,
        "fileName": fileName,
        "fileSize": fileSize,
        "mode": mode,
    })
    return RedirectResponse(url=f"/api/journals/{journal_id}", status_code=303)


@app.post("/api/actions/submit-quiz", response_model=schemas.SubmitOut)
def submit_quiz(
    quizId: Optional[str] = Form(None),
    responses: Optional[str] = Form(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    return actions.submit_quiz(db, user_id, quizId, responses)


# -----------------------------------------------------------------------------
# Journals
# -----------------------------------------------------------------------------
@app.get("/api/journals", response_model=schemas.JournalListOut)
def list_journals(user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    return {"items": [journal_row(j) for j in actions.list_journals(db, user_id)]}


@app.get("/api/journals/{journal_id}", response_model=schemas.JournalDetailOut)
def get_journal(journal_id: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    j = actions.get_journal(db, user_id, journal_id)
    return {
        **journal_row(j),
        "document": document_out(j.document) if j.document else None,
        "quizzes": [quiz_summary(q) for q in j.quizzes],
        "flashcards": [flashcard_out(f) for f in j.flashcards],
    }


@app.delete("/api/journals/{journal_id}")
def delete_journal(journal_id: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    actions.delete_journal(db, user_id, journal_id)
    return {"success": True}


# -----------------------------------------------------------------------------
# Quizzes & flashcards
# -----------------------------------------------------------------------------
@app.get("/api/quizzes/{quiz_id}", response_model=schemas.QuizView)
def get_quiz(quiz_id: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    return quiz_view(actions.get_owned_quiz(db, user_id, quiz_id))


@app.get("/api/quizzes/{quiz_id}/results", response_model=schemas.ResultsOut)
def get_quiz_results(quiz_id: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    return quiz_results(actions.get_owned_quiz(db, user_id, quiz_id))


@app.post("/api/flashcards/{flashcard_id}/review", response_model=schemas.FlashcardOut)
def review_flashcard(flashcard_id: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    return flashcard_out(actions.review_flashcard(db, user_id, flashcard_id))


# -----------------------------------------------------------------------------
# Identity-provider webhook
# -----------------------------------------------------------------------------
@app.post("/api/webhooks")
async def identity_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = webhooks.verify_event(payload, request.headers)
    webhooks.handle_event(db, event)
    return Response(status_code=200)
