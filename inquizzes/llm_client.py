# inquizzes/llm_client.py
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

OPENROUTER_API_KEY = os.environ.get("OPENROUTER_API_KEY")
OPENROUTER_URL = os.environ.get("OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions")
OPENROUTER_MODEL = os.environ.get("OPENROUTER_MODEL", "anthropic/claude-3.5-sonnet")
LLM_TIMEOUT_SECONDS = float(os.environ.get("LLM_TIMEOUT_SECONDS", "120"))
APP_REFERER = os.environ.get("APP_REFERER", "https://inquizzes.app")
APP_TITLE = "inQuizzes - Document Quiz Generator"

QUESTION_FORMAT_EXAMPLE = """[
  {
    "id": "q1",
    "question": "Which of the following best describes [specific concept]?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": 0,
    "explanation": "The text explains that [specific details without repetitive phrasing]"
  }
]"""


def build_system_prompt(question_count: int) -> str:
    return f"""You are an expert quiz generator. Create exactly {question_count} high-quality multiple choice questions based ONLY on the specific facts, concepts, and information presented in the text content.

CONTENT FOCUS:
- Test understanding of specific facts, concepts, details, or relationships mentioned in the text
- Each question must reference specific information that can be found in the text
- All 4 answer options should be plausible and related to the topic

FORBIDDEN TOPICS:
- NEVER ask about document structure, format, purpose, metadata, chapters, or sections
- NEVER ask about the author or their intent unless explicitly discussed in the content

QUESTION VARIETY - mix formats such as "Which of the following...", "What happens when...",
"How does...", "Why is...", "What is the main difference between...".

Avoid repetitive explanation openers like "According to the text".

RETURN ONLY VALID JSON, no markdown fences, no commentary:
{QUESTION_FORMAT_EXAMPLE}"""


def build_user_prompt(question_count: int, chunk: str) -> str:
    return f"Generate {question_count} multiple choice questions from this content:\n\n{chunk}"


def build_fallback_prompt(question_count: int, excerpt: str) -> str:
    return f"""Create {question_count} varied multiple choice questions about specific facts and concepts.

AVOID: document purpose, structure, chapters, author questions, repetitive "According to the text" phrases.

USE VARIED FORMATS: "Which of the following...", "What happens when...", "How does...", "Why is...", "What would result if..."

Return ONLY valid JSON: [{{"id":"q1","question":"Which of the following describes [concept]?","options":["A","B","C","D"],"correctAnswer":0,"explanation":"This occurs because [details]"}}]

Text: {excerpt}"""


@dataclass
class CompletionResult:
    """Outcome of one chat-completion call: the reply text, or why there is none."""
    content: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class OpenRouterClient:
    """Thin async wrapper over the OpenRouter chat-completions endpoint."""

    def __init__(self, api_key: Optional[str] = OPENROUTER_API_KEY, model: str = OPENROUTER_MODEL,
                 url: str = OPENROUTER_URL, timeout: float = LLM_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        # tests swap in httpx.MockTransport here
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": APP_REFERER,
            "X-Title": APP_TITLE,
        }

    async def complete(self, messages: List[Dict[str, str]], max_tokens: int = 4000,
                       temperature: float = 0.7) -> CompletionResult:
        """Send one chat request. Transport problems are returned, not raised."""
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        logger.info("Attempting LLM call to %s with model %s", self.url, self.model)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("LLM request failed: %s", e)
            return CompletionResult(error=f"request failed: {e.__class__.__name__}")

        if not resp.is_success:
            logger.error("LLM API error %s: %s", resp.status_code, resp.text[:200])
            return CompletionResult(error=f"status {resp.status_code}")

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.error("Unexpected LLM response body: %s", resp.text[:200])
            return CompletionResult(error="unexpected response body")

        if not isinstance(content, str) or not content.strip():
            return CompletionResult(error="empty completion")
        return CompletionResult(content=content)
