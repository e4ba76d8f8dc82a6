# inquizzes/generator.py
"""
Quiz generation pipeline: chunk the document, ask the LLM for questions one
chunk at a time, repair and validate each reply, and merge the results.

Chunks are processed strictly in order. The number of questions requested
from a chunk depends on how many earlier chunks already produced, so the
calls cannot be issued concurrently without changing the budget math.
"""
import logging
import math
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from inquizzes.chunker import chunk_text
from inquizzes.llm_client import (
    OpenRouterClient,
    build_fallback_prompt,
    build_system_prompt,
    build_user_prompt,
)
from inquizzes.repair import parse_question_array
from inquizzes.schemas import Question
from inquizzes.validator import validate_questions

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", "500000"))
MAX_CHUNK_SIZE = int(os.environ.get("MAX_CHUNK_SIZE", "12000"))
FALLBACK_MAX_QUESTIONS = 3
FALLBACK_EXCERPT_CHARS = 3000


class GenerationFailed(Exception):
    """No chunk produced a single valid question."""


class AttemptStatus(str, Enum):
    OK = "ok"
    TRANSPORT_ERROR = "transport_error"
    MALFORMED = "malformed"


@dataclass
class Chunk:
    index: int
    text: str
    target: int


@dataclass
class AttemptResult:
    status: AttemptStatus
    questions: List[Question] = field(default_factory=list)
    detail: str = ""


class QuizGenerator:
    def __init__(self, llm: OpenRouterClient, max_content_length: int = MAX_CONTENT_LENGTH,
                 max_chunk_size: int = MAX_CHUNK_SIZE):
        self.llm = llm
        self.max_content_length = max_content_length
        self.max_chunk_size = max_chunk_size

    async def generate(self, content: str, desired_count: int) -> List[Question]:
        if len(content) > self.max_content_length:
            logger.info("Content truncated from %d to %d characters for processing",
                        len(content), self.max_content_length)
            content = content[: self.max_content_length]

        texts = chunk_text(content, self.max_chunk_size)
        per_chunk_target = math.ceil(desired_count / len(texts))
        logger.info("Generating %d questions from %d chunk(s), up to %d per chunk",
                    desired_count, len(texts), per_chunk_target)

        collected: List[Question] = []
        for index, text in enumerate(texts):
            remaining = desired_count - len(collected)
            if remaining <= 0:
                logger.info("Question target reached after %d chunk(s)", index)
                break
            chunk = Chunk(index=index, text=text, target=min(per_chunk_target, remaining))
            collected.extend(await self._process_chunk(chunk))

        if not collected:
            raise GenerationFailed("Failed to generate any questions from the content")
        return self._reassign_ids(collected)

    async def _process_chunk(self, chunk: Chunk) -> List[Question]:
        result = await self.attempt(chunk)
        if result.status is AttemptStatus.TRANSPORT_ERROR:
            logger.warning("Skipping chunk %d: %s", chunk.index, result.detail)
            return []
        if result.status is AttemptStatus.MALFORMED:
            logger.warning("Failed to parse questions for chunk %d (%s), retrying with simpler prompt",
                           chunk.index, result.detail)
            result = await self.fallback_attempt(chunk)
            if result.status is not AttemptStatus.OK:
                logger.error("Retry also failed for chunk %d: %s", chunk.index, result.detail)
                return []
        logger.info("Parsed %d question(s) from chunk %d", len(result.questions), chunk.index)
        return result.questions

    async def attempt(self, chunk: Chunk) -> AttemptResult:
        messages = [
            {"role": "system", "content": build_system_prompt(chunk.target)},
            {"role": "user", "content": build_user_prompt(chunk.target, chunk.text)},
        ]
        return await self._request(messages, chunk.target, max_tokens=4000, temperature=0.7)

    async def fallback_attempt(self, chunk: Chunk) -> AttemptResult:
        count = min(chunk.target, FALLBACK_MAX_QUESTIONS)
        prompt = build_fallback_prompt(count, chunk.text[:FALLBACK_EXCERPT_CHARS])
        return await self._request([{"role": "user", "content": prompt}], count,
                                   max_tokens=2000, temperature=0.5)

    async def _request(self, messages, max_count: int, max_tokens: int,
                       temperature: float) -> AttemptResult:
        completion = await self.llm.complete(messages, max_tokens=max_tokens, temperature=temperature)
        if not completion.ok:
            return AttemptResult(AttemptStatus.TRANSPORT_ERROR, detail=completion.error)

        parsed = parse_question_array(completion.content)
        if not parsed.ok:
            logger.debug("Problematic content: %s...", completion.content[:200])
            return AttemptResult(AttemptStatus.MALFORMED, detail=parsed.error)
        return AttemptResult(AttemptStatus.OK, questions=validate_questions(parsed.items, max_count))

    @staticmethod
    def _reassign_ids(questions: List[Question]) -> List[Question]:
        # model-provided ids repeat across chunks ("q1" every time)
        stamp = int(time.time() * 1000)
        return [q.model_copy(update={"id": f"q_{stamp}_{i}"}) for i, q in enumerate(questions)]
