# inquizzes/quiz_store.py
"""
Persistence for quizzes and attempts.

`QuizStore` is the repository interface the API talks to. `MemoryQuizStore`
keeps everything in process (tests, single-instance deployments);
`RedisQuizStore` keeps it in Redis so several workers can share quizzes.
Both own their id counters and both drop a quiz's attempts no later than
the quiz itself during the retention sweep.
"""
import itertools
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from inquizzes.schemas import Quiz, QuizAttempt, QuizAttemptCreate, QuizCreate

logger = logging.getLogger(__name__)

STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "memory")
REDIS_URL = os.environ.get("REDIS_URL", "redis://redis:6379")
REDIS_KEY_PREFIX = os.environ.get("REDIS_KEY_PREFIX", "inquizzes")
RETENTION_HOURS = float(os.environ.get("RETENTION_HOURS", "6"))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizStore(ABC):
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    @abstractmethod
    async def create_quiz(self, data: QuizCreate) -> Quiz: ...

    @abstractmethod
    async def get_quiz(self, quiz_id: int) -> Optional[Quiz]: ...

    @abstractmethod
    async def create_attempt(self, data: QuizAttemptCreate) -> QuizAttempt: ...

    @abstractmethod
    async def get_attempt(self, attempt_id: int) -> Optional[QuizAttempt]: ...

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete quizzes created before `cutoff` with all their attempts. Returns quizzes removed."""

    async def cleanup_expired(self, retention: timedelta = timedelta(hours=RETENTION_HOURS)) -> int:
        removed = await self.delete_older_than(self.clock() - retention)
        if removed:
            logger.info(f"Retention sweep removed {removed} quiz(zes) older than {retention}")
        return removed

    async def close(self):
        pass

    def _new_quiz(self, quiz_id: int, data: QuizCreate) -> Quiz:
        return Quiz(
            id=quiz_id,
            file_name=data.file_name,
            file_size=data.file_size,
            content=data.content,
            question_count=data.question_count,
            questions=data.questions,
            created_at=self.clock(),
        )

    def _new_attempt(self, attempt_id: int, data: QuizAttemptCreate) -> QuizAttempt:
        return QuizAttempt(id=attempt_id, completed_at=self.clock(), **data.model_dump())


class MemoryQuizStore(QuizStore):
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        super().__init__(clock)
        self._quizzes: Dict[int, Quiz] = {}
        self._attempts: Dict[int, QuizAttempt] = {}
        self._quiz_ids = itertools.count(1)
        self._attempt_ids = itertools.count(1)

    async def create_quiz(self, data: QuizCreate) -> Quiz:
        quiz = self._new_quiz(next(self._quiz_ids), data)
        self._quizzes[quiz.id] = quiz
        return quiz

    async def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        return self._quizzes.get(quiz_id)

    async def create_attempt(self, data: QuizAttemptCreate) -> QuizAttempt:
        attempt = self._new_attempt(next(self._attempt_ids), data)
        self._attempts[attempt.id] = attempt
        return attempt

    async def get_attempt(self, attempt_id: int) -> Optional[QuizAttempt]:
        return self._attempts.get(attempt_id)

    async def delete_older_than(self, cutoff: datetime) -> int:
        expired = {qid for qid, q in self._quizzes.items() if q.created_at < cutoff}
        stale = [
            aid for aid, a in self._attempts.items()
            if a.quiz_id in expired or a.quiz_id not in self._quizzes or a.completed_at < cutoff
        ]
        for aid in stale:
            del self._attempts[aid]
        for qid in expired:
            del self._quizzes[qid]
        return len(expired)


class RedisQuizStore(QuizStore):
    """
    Layout (all keys under REDIS_KEY_PREFIX):
      quiz:next_id / attempt:next_id   INCR counters
      quiz:<id> / attempt:<id>         JSON documents
      quiz:<id>:attempts               set of attempt ids for a quiz
      quizzes / attempts               sorted sets scored by creation timestamp
    """

    def __init__(self, redis_url: str = REDIS_URL, client: Optional[redis.Redis] = None,
                 prefix: str = REDIS_KEY_PREFIX, clock: Callable[[], datetime] = utcnow):
        super().__init__(clock)
        self.redis = client if client is not None else redis.from_url(redis_url, decode_responses=True)
        self.prefix = prefix
        logger.info(f"RedisQuizStore initialized with Redis URL: {redis_url}")

    def _key(self, *parts) -> str:
        return ":".join([self.prefix, *(str(p) for p in parts)])

    async def create_quiz(self, data: QuizCreate) -> Quiz:
        quiz = self._new_quiz(await self.redis.incr(self._key("quiz", "next_id")), data)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(self._key("quiz", quiz.id), quiz.model_dump_json())
            pipe.zadd(self._key("quizzes"), {str(quiz.id): quiz.created_at.timestamp()})
            await pipe.execute()
        return quiz

    async def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        raw = await self.redis.get(self._key("quiz", quiz_id))
        return Quiz.model_validate_json(raw) if raw else None

    async def create_attempt(self, data: QuizAttemptCreate) -> QuizAttempt:
        attempt = self._new_attempt(await self.redis.incr(self._key("attempt", "next_id")), data)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(self._key("attempt", attempt.id), attempt.model_dump_json())
            pipe.sadd(self._key("quiz", attempt.quiz_id, "attempts"), str(attempt.id))
            pipe.zadd(self._key("attempts"), {str(attempt.id): attempt.completed_at.timestamp()})
            await pipe.execute()
        return attempt

    async def get_attempt(self, attempt_id: int) -> Optional[QuizAttempt]:
        raw = await self.redis.get(self._key("attempt", attempt_id))
        return QuizAttempt.model_validate_json(raw) if raw else None

    async def delete_older_than(self, cutoff: datetime) -> int:
        upper = f"({cutoff.timestamp()}"
        expired = await self.redis.zrangebyscore(self._key("quizzes"), "-inf", upper)
        for quiz_id in expired:
            await self._delete_quiz(quiz_id)

        stale = await self.redis.zrangebyscore(self._key("attempts"), "-inf", upper)
        if stale:
            async with self.redis.pipeline(transaction=True) as pipe:
                for aid in stale:
                    pipe.delete(self._key("attempt", aid))
                pipe.zrem(self._key("attempts"), *stale)
                await pipe.execute()
        return len(expired)

    async def _delete_quiz(self, quiz_id: str):
        attempts_key = self._key("quiz", quiz_id, "attempts")
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    # an attempt recorded between SMEMBERS and EXEC aborts the block
                    await pipe.watch(attempts_key)
                    attempt_ids = await pipe.smembers(attempts_key)
                    pipe.multi()
                    for aid in attempt_ids:
                        pipe.delete(self._key("attempt", aid))
                    if attempt_ids:
                        pipe.zrem(self._key("attempts"), *attempt_ids)
                    pipe.delete(attempts_key)
                    pipe.delete(self._key("quiz", quiz_id))
                    pipe.zrem(self._key("quizzes"), quiz_id)
                    await pipe.execute()
                    return
                except WatchError:
                    logger.debug(f"Attempts of quiz {quiz_id} changed during cleanup, retrying")

    async def close(self):
        await self.redis.aclose()


def build_store(backend: str = STORAGE_BACKEND, redis_url: str = REDIS_URL) -> QuizStore:
    if backend == "redis":
        return RedisQuizStore(redis_url)
    if backend == "memory":
        return MemoryQuizStore()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
