import json
from datetime import datetime, timedelta, timezone

import pytest

from inquizzes.llm_client import CompletionResult


def question_dict(n, **overrides):
    q = {
        "id": f"q{n}",
        "question": f"Question {n}?",
        "options": [f"{n}a", f"{n}b", f"{n}c", f"{n}d"],
        "correctAnswer": n % 4,
        "explanation": f"Because {n}.",
    }
    q.update(overrides)
    return q


def questions_json(count, start=1):
    return json.dumps([question_dict(n) for n in range(start, start + count)])


class FakeLLM:
    """Stands in for OpenRouterClient; replays scripted replies and records every call."""

    def __init__(self, replies=None, default=None, configured=True):
        self.replies = list(replies or [])
        self.default = default
        self.configured = configured
        self.calls = []

    async def complete(self, messages, max_tokens=4000, temperature=0.7):
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        reply = self.replies.pop(0) if self.replies else self.default
        if callable(reply):
            reply = reply(messages)
        if isinstance(reply, CompletionResult):
            return reply
        if reply is None:
            return CompletionResult(error="status 503")
        return CompletionResult(content=reply)


class Clock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def make_questions():
    return questions_json


@pytest.fixture
def make_question():
    return question_dict


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def clock():
    return Clock()
