# parser.py
"""
Turns the model's free-text answers into quiz questions and flashcards.

The model is asked for a fixed template (see prompts/), but it is trusted,
not verified, to follow it. The scanner therefore accepts the usual markdown
noise around the markers, and a JSON answer is accepted as well.
"""
import json
import logging
import re
import uuid
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from learning_journal.schemas import QuizQuestion, FlashcardIn

log = logging.getLogger(__name__)

MIN_OPTIONS = 4
MAX_FLASHCARDS = 5

# "**Question 1**", "## Question 2:", "Question 3 - What is ...?"
QUESTION_START_RE = re.compile(
    r"^(?:#{1,6}\s*)?\**\s*question(?![a-z])\s*\d*\s*\**\s*[:.)\-]?\s*\**\s*(?P<rest>.*)$", re.I
)
FIELD_RE = re.compile(
    r"^[\s\-*•]*(?:\*\*)?(?P<label>text|options|correct(?:\s+answer)?|answer)(?:\*\*)?\s*:\s*(?:\*\*)?\s*(?P<value>.*)$",
    re.I,
)
OPTION_LINE_RE = re.compile(r"^[\s\-*•]*\(?(?P<letter>[A-Da-d])[).:]\s+(?P<text>.+)$")
OPTION_PREFIX_RE = re.compile(r"^\(?[A-Da-d][).:]\s+")

FLASHCARD_START_RE = re.compile(r"^(?:#{1,6}\s*)?\**\s*flashcard\b", re.I)
FLASHCARD_FIELD_RE = re.compile(
    r"^[\s\-*•]*(?:\*\*)?(?P<label>question|answer)(?:\*\*)?\s*:\s*(?:\*\*)?\s*(?P<value>.*)$", re.I
)


class QuizParseError(Exception):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _clean(value: str) -> str:
    return value.strip().strip("*").strip()


def _split_options(value: str) -> List[str]:
    parts = [OPTION_PREFIX_RE.sub("", _clean(p)) for p in value.split(",")]
    return [p for p in parts if p]


def _strip_fences(text: str) -> str:
    # Some models wrap JSON in ``` blocks; strip if present
    content = text.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


def _resolve_correct(correct: str, options: List[str]) -> Optional[str]:
    """Map the stated answer onto one option's text; letters A-D are accepted."""
    answer = OPTION_PREFIX_RE.sub("", _clean(correct)).rstrip(".;!").strip()
    for opt in options:
        if opt.lower() == answer.lower():
            return opt
    letter = _clean(correct).rstrip(").:").strip()
    if len(letter) == 1 and letter.upper() in "ABCD":
        idx = "ABCD".index(letter.upper())
        if idx < len(options):
            return options[idx]
    return None


def _build_question(text: str, options: List[str], correct: str) -> Optional[dict]:
    """Apply the completeness rule and validate; returns None when the entry is dropped."""
    text, correct = _clean(text or ""), _clean(correct or "")
    if not text or len(options) < MIN_OPTIONS or not correct:
        return None

    resolved = _resolve_correct(correct, options)
    if resolved is None:
        log.warning("Dropping question %r: correct answer %r is not one of its options", text, correct)
        return None

    try:
        question = QuizQuestion(
            id=_new_id(),
            text=text,
            options=[{"id": _new_id(), "text": o} for o in options],
            correct=resolved,
        )
    except PydanticValidationError as e:
        log.warning("Dropping question %r: %s", text, e)
        return None
    return question.model_dump()


def _parse_json_questions(content: str) -> Optional[List[dict]]:
    try:
        data = json.loads(content)
    except ValueError:
        return None
    if isinstance(data, dict):
        data = data.get("questions") or data.get("quiz") or []
    if not isinstance(data, list):
        return None

    out = []
    for item in data:
        if not isinstance(item, dict):
            continue
        raw_options = item.get("options") or []
        options = []
        for o in raw_options:
            label = o.get("text") if isinstance(o, dict) else o
            if isinstance(label, str) and _clean(label):
                options.append(OPTION_PREFIX_RE.sub("", _clean(label)))
        q = _build_question(
            item.get("text") or item.get("question") or "",
            options,
            str(item.get("correct") or item.get("answer") or ""),
        )
        if q:
            out.append(q)
    return out


def _scan_marked_questions(text: str) -> List[dict]:
    out = []
    current = None

    def flush():
        if current is None:
            return
        q = _build_question(current["text"], current["options"], current["correct"])
        if q:
            out.append(q)

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue

        start = QUESTION_START_RE.match(line)
        if start and not FIELD_RE.match(line):
            flush()
            current = {"text": _clean(start.group("rest")), "options": [], "correct": ""}
            continue
        if current is None:
            continue

        field = FIELD_RE.match(line)
        if field:
            label = field.group("label").lower()
            value = field.group("value")
            if label == "text":
                current["text"] = _clean(value)
            elif label == "options":
                current["options"] = _split_options(value)
            else:
                current["correct"] = _clean(value)
            continue

        # options written one per line ("A) Paris") under an empty "Options:"
        opt = OPTION_LINE_RE.match(line)
        if opt:
            current["options"].append(_clean(opt.group("text")))

    flush()
    return out


def parse_quiz_text(text: str) -> List[dict]:
    """
    Returns the committed questions as dicts:
        {"id", "text", "options": [{"id", "text"}, ...], "correct"}
    Raises QuizParseError when nothing usable was found.
    """
    content = _strip_fences(text or "")

    questions = None
    if content.startswith("[") or content.startswith("{"):
        questions = _parse_json_questions(content)
    if questions is None:
        questions = _scan_marked_questions(content)

    if not questions:
        raise QuizParseError("No valid quiz questions generated")
    log.info("Parsed %d quiz questions", len(questions))
    return questions


def parse_flashcard_text(text: str) -> List[dict]:
    """Returns up to five {"question", "answer"} dicts; an empty list when none parse."""
    cards = []
    current = None

    def flush():
        if current and current["question"] and current["answer"]:
            try:
                cards.append(FlashcardIn(**current).model_dump())
            except PydanticValidationError as e:
                log.warning("Dropping flashcard %r: %s", current["question"], e)

    for line in (text or "").splitlines():
        line = line.strip()
        if FLASHCARD_START_RE.match(line):
            flush()
            current = {"question": "", "answer": ""}
            continue
        field = FLASHCARD_FIELD_RE.match(line)
        if field and current is not None:
            current[field.group("label").lower()] = _clean(field.group("value"))

    flush()
    return cards[:MAX_FLASHCARDS]
