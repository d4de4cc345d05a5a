# schemas.py
from typing import List, Optional
from pydantic import BaseModel, Field


# -----------------------------------------------------------------------------
# Quiz content (stored in quizzes.questions / quizzes.responses)
# -----------------------------------------------------------------------------
class QuizOption(BaseModel):
    id: str
    text: str = Field(min_length=1)


class QuizQuestion(BaseModel):
    id: str
    text: str = Field(min_length=1)
    options: List[QuizOption] = Field(min_length=4)
    correct: str = Field(min_length=1)


class ResponseIn(BaseModel):
    questionId: str
    selectedAnswer: str = ""   # option id


class EvaluatedResponse(BaseModel):
    questionId: str
    selectedAnswer: str        # option text, "" when unmatched
    isCorrect: bool


class FlashcardIn(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


# -----------------------------------------------------------------------------
# API payloads
# -----------------------------------------------------------------------------
class QuizOut(BaseModel):
    id: str
    title: str
    questions: List[QuizQuestion]


class SubmitOut(BaseModel):
    success: bool
    score: int
    totalQuestions: int


class UploadOut(BaseModel):
    url: str
    key: str
    name: str
    size: int


class DocumentOut(BaseModel):
    id: str
    url: str
    key: str
    name: str
    size: Optional[int] = None
    uploadedAt: str


class FlashcardOut(BaseModel):
    id: str
    question: str
    answer: str
    lastReviewed: Optional[str] = None


class QuizSummary(BaseModel):
    id: str
    questionCount: int
    graded: bool
    score: Optional[int] = None
    totalQuestions: Optional[int] = None
    createdAt: str


class JournalRow(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    lastModified: str
    createdAt: str


class JournalListOut(BaseModel):
    items: List[JournalRow]


class JournalDetailOut(JournalRow):
    document: Optional[DocumentOut] = None
    quizzes: List[QuizSummary]
    flashcards: List[FlashcardOut]


class QuizView(BaseModel):
    id: str
    journalId: str
    questions: List[QuizQuestion]
    score: Optional[int] = None
    totalQuestions: Optional[int] = None
    responses: Optional[List[EvaluatedResponse]] = None


class ResultRow(BaseModel):
    questionId: str
    text: str
    correctAnswer: str
    selectedAnswer: Optional[str] = None
    isCorrect: bool
    answered: bool


class ResultsOut(BaseModel):
    id: str
    journalId: str
    score: int
    totalQuestions: int
    results: List[ResultRow]
