# inquizzes/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # snake_case in Python, camelCase on the wire (what the web client sends/reads)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Question(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="unique id for question within its quiz")
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: int = Field(..., ge=0, le=3)
    explanation: str = ""


class QuizCreate(CamelModel):
    file_name: str
    file_size: int
    content: str
    questions: List[Question]

    @property
    def question_count(self) -> int:
        return len(self.questions)


class Quiz(CamelModel):
    id: int
    file_name: str
    file_size: int
    content: str
    question_count: int
    questions: List[Question]
    created_at: datetime

    @model_validator(mode="after")
    def _count_matches_questions(self):
        if self.question_count != len(self.questions):
            raise ValueError("questionCount must equal the number of questions")
        return self

    def find_question(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


class UserAnswer(CamelModel):
    question_id: str
    selected_answer: int
    is_correct: bool


class QuizAttemptCreate(CamelModel):
    quiz_id: int
    answers: List[UserAnswer]
    score: int = Field(..., ge=0, le=100)


class QuizAttempt(QuizAttemptCreate):
    id: int
    completed_at: datetime


# --- request / response bodies ---

class GenerateQuizRequest(CamelModel):
    content: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., gt=0)
    question_count: int = Field(..., gt=0)


class SubmittedAnswer(CamelModel):
    question_id: str
    selected_answer: int


class SubmitQuizRequest(CamelModel):
    answers: List[SubmittedAnswer]


class IncorrectAnswer(CamelModel):
    question: Question
    user_answer: int
    correct_answer: int


class SubmissionResult(QuizAttempt):
    correct_count: int
    total_questions: int
    incorrect_answers: List[IncorrectAnswer]


class ProcessedDocument(CamelModel):
    content: str
    page_count: int
    file_name: str
    file_size: int
