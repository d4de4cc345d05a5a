import pytest

from learning_journal.parser import QuizParseError, parse_flashcard_text, parse_quiz_text

from conftest import FLASHCARD_TEXT, QUIZ_TEXT


def test_parses_template_questions():
    questions = parse_quiz_text(QUIZ_TEXT)

    assert [q["text"] for q in questions] == [
        "What is the capital of France?",
        "Which planet is known as the red planet?",
    ]
    assert [o["text"] for o in questions[0]["options"]] == ["Paris", "Rome", "Berlin", "Madrid"]
    assert questions[0]["correct"] == "Paris"
    assert questions[1]["correct"] == "Mars"


def test_ids_are_unique():
    questions = parse_quiz_text(QUIZ_TEXT)
    ids = [q["id"] for q in questions] + [o["id"] for q in questions for o in q["options"]]
    assert len(ids) == len(set(ids))


def test_incomplete_entries_are_dropped():
    text = """**Question 1**
Text: Complete one?
Options: a, b, c, d
Correct: a

**Question 2**
Text: Only three options?
Options: a, b, c
Correct: a

**Question 3**
Options: a, b, c, d
Correct: a

**Question 4**
Text: Trailing, no correct field
Options: a, b, c, d
"""
    questions = parse_quiz_text(text)
    assert [q["text"] for q in questions] == ["Complete one?"]


def test_no_markers_fails():
    with pytest.raises(QuizParseError, match="No valid quiz questions generated"):
        parse_quiz_text("I'm sorry, I could not read that document.")


def test_correct_answer_must_match_an_option():
    text = """**Question 1**
Text: Mismatch?
Options: a, b, c, d
Correct: e

**Question 2**
Text: Case differs?
Options: Alpha, Beta, Gamma, Delta
Correct: beta
"""
    questions = parse_quiz_text(text)
    assert len(questions) == 1
    assert questions[0]["correct"] == "Beta"


def test_markdown_noise_and_letter_answers():
    text = """## Question 1: What is 2 + 2?
**Options:** A) 3, B) 4, C) 5, D) 6
**Correct Answer:** B
"""
    [q] = parse_quiz_text(text)
    assert q["text"] == "What is 2 + 2?"
    assert [o["text"] for o in q["options"]] == ["3", "4", "5", "6"]
    assert q["correct"] == "4"


def test_options_one_per_line():
    text = """**Question 1**
Text: Largest ocean?
Options:
A) Atlantic
B) Pacific
C) Indian
D) Arctic
Correct: Pacific
"""
    [q] = parse_quiz_text(text)
    assert len(q["options"]) == 4
    assert q["correct"] == "Pacific"


def test_fenced_json_answer():
    text = """```json
[{"question": "Capital of Italy?", "options": ["Paris", "Rome", "Oslo", "Bern"], "answer": "Rome"}]
```"""
    [q] = parse_quiz_text(text)
    assert q["text"] == "Capital of Italy?"
    assert q["correct"] == "Rome"


def test_flashcards():
    cards = parse_flashcard_text(FLASHCARD_TEXT)
    assert cards == [
        {"question": "What is photosynthesis?", "answer": "Turning light into chemical energy."},
        {"question": "Where does it happen?", "answer": "In chloroplasts."},
    ]


def test_flashcards_capped_at_five():
    text = "\n".join(f"**Flashcard {i}**\nQuestion: q{i}\nAnswer: a{i}" for i in range(1, 8))
    assert len(parse_flashcard_text(text)) == 5


def test_flashcards_incomplete_dropped():
    assert parse_flashcard_text("**Flashcard 1**\nQuestion: only a question") == []


def test_trailing_punctuation_on_correct_answer():
    text = """**Question 1**
Text: Capital of France?
Options: Paris, Rome, Berlin, Madrid
Correct: Paris.
"""
    [q] = parse_quiz_text(text)
    assert q["correct"] == "Paris"
