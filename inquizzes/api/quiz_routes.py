# inquizzes/api/quiz_routes.py
import logging
import os
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from inquizzes.generator import GenerationFailed, QuizGenerator
from inquizzes.pdf_processor import DocumentError, extract_pdf_text
from inquizzes.quiz_store import QuizStore
from inquizzes.schemas import (
    GenerateQuizRequest,
    ProcessedDocument,
    Quiz,
    QuizAttempt,
    QuizAttemptCreate,
    QuizCreate,
    SubmissionResult,
    SubmitQuizRequest,
)
from inquizzes.scoring import score_answers

logger = logging.getLogger(__name__)

MAX_QUESTION_COUNT = int(os.environ.get("MAX_QUESTION_COUNT", "50"))
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(15 * 1024 * 1024)))
MIN_DOCUMENT_CHARS = int(os.environ.get("MIN_DOCUMENT_CHARS", "100"))

router = APIRouter(prefix="/api")


# --- dependencies (overridden in tests) ---

def get_store(request: Request) -> QuizStore:
    return request.app.state.store


def get_generator(request: Request) -> QuizGenerator:
    return QuizGenerator(request.app.state.llm)


@router.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/process-pdf", response_model=ProcessedDocument)
async def process_pdf(pdf: UploadFile = File(None)):
    if pdf is None:
        raise HTTPException(status_code=400, detail="No PDF file uploaded")
    if pdf.content_type != "application/pdf":
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    data = await pdf.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="PDF exceeds the 15MB upload limit")

    try:
        doc = await run_in_threadpool(extract_pdf_text, data)
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if len(doc.content) < MIN_DOCUMENT_CHARS:
        raise HTTPException(
            status_code=400,
            detail="PDF appears to be empty or contains very little readable text. "
                   "Please ensure the PDF contains text content that can be extracted.",
        )
    return ProcessedDocument(
        content=doc.content,
        page_count=doc.page_count,
        file_name=pdf.filename or "document.pdf",
        file_size=len(data),
    )


@router.post("/generate-quiz", response_model=Quiz)
async def generate_quiz(payload: Any = Body(None), store: QuizStore = Depends(get_store),
                        generator: QuizGenerator = Depends(get_generator)):
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    try:
        req = GenerateQuizRequest.model_validate(payload)
    except ValidationError:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: content, fileName, fileSize, questionCount",
        )
    if not generator.llm.configured:
        raise HTTPException(status_code=500, detail="OpenRouter API key not configured")

    question_count = min(req.question_count, MAX_QUESTION_COUNT)
    try:
        questions = await generator.generate(req.content, question_count)
    except GenerationFailed as e:
        logger.error("Quiz generation failed for %s: %s", req.file_name, e)
        raise HTTPException(status_code=500, detail=str(e))

    quiz = await store.create_quiz(QuizCreate(
        file_name=req.file_name,
        file_size=req.file_size,
        content=req.content,
        questions=questions,
    ))
    logger.info("Created quiz %d with %d question(s) from %s", quiz.id, quiz.question_count, quiz.file_name)
    await store.cleanup_expired()
    return quiz


@router.get("/quiz/{quiz_id}", response_model=Quiz)
async def get_quiz(quiz_id: int, store: QuizStore = Depends(get_store)):
    quiz = await store.get_quiz(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.post("/quiz/{quiz_id}/submit", response_model=SubmissionResult)
async def submit_quiz(quiz_id: int, payload: Any = Body(None), store: QuizStore = Depends(get_store)):
    if not isinstance(payload, dict) or not isinstance(payload.get("answers"), list):
        raise HTTPException(status_code=400, detail="Answers must be an array")
    try:
        req = SubmitQuizRequest.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Each answer needs a questionId and a numeric selectedAnswer")

    quiz = await store.get_quiz(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")

    result = score_answers(quiz, req.answers)
    attempt = await store.create_attempt(QuizAttemptCreate(
        quiz_id=quiz.id,
        answers=result.answers,
        score=result.score,
    ))
    return SubmissionResult(
        **attempt.model_dump(),
        correct_count=result.correct_count,
        total_questions=result.total_questions,
        incorrect_answers=result.incorrect_answers,
    )


@router.get("/attempt/{attempt_id}", response_model=QuizAttempt)
async def get_attempt(attempt_id: int, store: QuizStore = Depends(get_store)):
    attempt = await store.get_attempt(attempt_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return attempt
