# llm.py  — Gemini calls for quiz and flashcard generation
import logging
import os
from typing import Optional

from dotenv import load_dotenv
import google.generativeai as genai

from learning_journal.fetcher import fetch_pdf, FetchError

load_dotenv()

log = logging.getLogger(__name__)

API_KEY = os.getenv("GOOGLE_API_KEY", "").strip()
if not API_KEY:
    raise RuntimeError("GOOGLE_API_KEY is missing in .env")

# You can pin a model in .env (GEMINI_MODEL=...); the fallback list is tried after it.
ENV_MODEL = (os.getenv("GEMINI_MODEL") or "").strip()

# Models that accept inline PDF parts, tried in this order
CANDIDATE_MODELS = [
    "gemini-1.5-flash",
    "gemini-1.5-flash-002",
    "gemini-1.5-pro",
    "gemini-2.0-flash",
]

PDF_MIME_TYPE = "application/pdf"
PING_PROMPT = "Reply with OK"

PROMPT_DIR = os.path.join(os.path.dirname(__file__), "prompts")


def _load_prompt(name: str) -> str:
    with open(os.path.join(PROMPT_DIR, name), "r", encoding="utf-8") as f:
        return f.read().strip()


QUIZ_PROMPT = _load_prompt("quiz_prompt.md")
FLASHCARD_PROMPT = _load_prompt("flashcard_prompt.md")

genai.configure(api_key=API_KEY)


class LLMError(Exception):
    pass


def _models_to_try() -> list:
    names = [ENV_MODEL] if ENV_MODEL else []
    names += [m for m in CANDIDATE_MODELS if m != ENV_MODEL]
    return names


def _try_model_once(model_name: str, pdf_bytes: Optional[bytes], instruction: str) -> str:
    model = genai.GenerativeModel(model_name)
    parts = [instruction]
    if pdf_bytes is not None:
        # The SDK base64-encodes inline blobs on the wire.
        parts.insert(0, {"mime_type": PDF_MIME_TYPE, "data": pdf_bytes})
    resp = model.generate_content(parts)
    if not hasattr(resp, "text") or not resp.text:
        raise LLMError(f"Model {model_name} returned empty response.")
    return resp.text.strip()


def _generate_from_pdf(pdf_url: str, instruction: str) -> str:
    try:
        pdf_bytes = fetch_pdf(pdf_url)
    except FetchError as e:
        raise LLMError(str(e))

    errors = []
    for name in _models_to_try():
        try:
            log.info("Trying model %s for %s (%d bytes)", name, pdf_url, len(pdf_bytes))
            return _try_model_once(name, pdf_bytes, instruction)
        except Exception as e:
            errors.append(f"{name}: {e}")
            continue
    raise LLMError("All candidate models failed:\n" + "\n".join(errors))


def generate_quiz_text(pdf_url: str) -> str:
    """
    Fetches the PDF and asks the model for five multiple-choice questions.
    Returns the raw response text. Raises LLMError on any fetch or model failure.
    """
    return _generate_from_pdf(pdf_url, QUIZ_PROMPT)


def generate_flashcard_text(pdf_url: str) -> str:
    return _generate_from_pdf(pdf_url, FLASHCARD_PROMPT)


# --- Simple ping for /api/llm-test
def ping_llm() -> dict:
    """
    Returns {"ok": True, "model": <model_used>, "content": "..."} on success,
            or {"ok": False, "error": "..."} on failure.
    """
    errors = []
    for name in _models_to_try():
        try:
            reply = _try_model_once(name, None, PING_PROMPT)
        except Exception as e:
            errors.append(f"{name}: {e}")
            continue
        return {"ok": True, "model": name, "content": reply[:200]}
    log.warning("LLM ping failed for every model")
    return {"ok": False, "error": "; ".join(errors) or "No model configured"}
