# uploads.py
"""
PDF uploads, kept on local disk under UPLOAD_DIR and served back at /files/<key>.
"""
import os
import uuid

from dotenv import load_dotenv
from fastapi import UploadFile

from learning_journal.errors import ValidationError

load_dotenv()

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 16 * 1024 * 1024))  # 16MB
FILES_ROUTE = "/files"
PDF_MAGIC = b"%PDF-"
CHUNK = 1024 * 1024


def _safe_name(filename: str) -> str:
    name = os.path.basename(filename or "").strip()
    return name or "document.pdf"


def save_pdf(file: UploadFile) -> dict:
    """
    Stores one PDF and returns {url, key, name, size}.
    Raises ValidationError for non-PDF or oversized files.
    """
    name = _safe_name(file.filename)
    if not name.lower().endswith(".pdf"):
        raise ValidationError("Only PDF files are accepted")

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    key = f"{uuid.uuid4().hex}.pdf"
    path = os.path.join(UPLOAD_DIR, key)

    size = 0
    head = b""
    stored = False
    try:
        with open(path, "wb") as out:
            while True:
                chunk = file.file.read(CHUNK)
                if not chunk:
                    break
                if not head:
                    head = chunk[:len(PDF_MAGIC)]
                size += len(chunk)
                if size > MAX_UPLOAD_SIZE:
                    raise ValidationError(f"File exceeds the {MAX_UPLOAD_SIZE // (1024 * 1024)}MB limit")
                out.write(chunk)
        if not head.startswith(PDF_MAGIC):
            raise ValidationError("Only PDF files are accepted")
        stored = True
    finally:
        if not stored and os.path.exists(path):
            os.remove(path)

    return {
        "url": f"{PUBLIC_BASE_URL}{FILES_ROUTE}/{key}",
        "key": key,
        "name": name,
        "size": size,
    }
