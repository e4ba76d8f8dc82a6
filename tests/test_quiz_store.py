from datetime import timedelta

import fakeredis
import pytest

from inquizzes.quiz_store import MemoryQuizStore, RedisQuizStore, build_store
from inquizzes.schemas import Question, QuizAttemptCreate, QuizCreate, UserAnswer


@pytest.fixture(params=["memory", "redis"])
async def store(request, clock):
    if request.param == "memory":
        s = MemoryQuizStore(clock=clock)
    else:
        redis_client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
        s = RedisQuizStore(client=redis_client, clock=clock)
    yield s
    await s.close()


def quiz_data(name="doc.pdf"):
    questions = [Question(id="q_1_0", question="Q?", options=["a", "b", "c", "d"],
                          correct_answer=2, explanation="E")]
    return QuizCreate(file_name=name, file_size=2048, content="source text", questions=questions)


def attempt_data(quiz_id):
    return QuizAttemptCreate(
        quiz_id=quiz_id,
        answers=[UserAnswer(question_id="q_1_0", selected_answer=2, is_correct=True)],
        score=100,
    )


async def test_create_and_get_quiz(store, clock):
    first = await store.create_quiz(quiz_data("a.pdf"))
    second = await store.create_quiz(quiz_data("b.pdf"))

    assert (first.id, second.id) == (1, 2)
    assert first.question_count == 1
    assert first.created_at == clock.now

    loaded = await store.get_quiz(first.id)
    assert loaded == first
    assert loaded.questions[0].correct_answer == 2


async def test_missing_records_are_none(store):
    assert await store.get_quiz(99) is None
    assert await store.get_attempt(99) is None


async def test_create_and_get_attempt(store):
    quiz = await store.create_quiz(quiz_data())
    attempt = await store.create_attempt(attempt_data(quiz.id))

    assert attempt.id == 1
    assert attempt.quiz_id == quiz.id
    assert await store.get_attempt(attempt.id) == attempt


async def test_cleanup_removes_expired_quiz_and_its_attempts(store, clock):
    old = await store.create_quiz(quiz_data("old.pdf"))
    clock.advance(minutes=5)
    old_attempt = await store.create_attempt(attempt_data(old.id))

    clock.advance(hours=6, minutes=30)
    fresh = await store.create_quiz(quiz_data("fresh.pdf"))
    fresh_attempt = await store.create_attempt(attempt_data(fresh.id))

    removed = await store.cleanup_expired(timedelta(hours=6))

    assert removed == 1
    assert await store.get_quiz(old.id) is None
    assert await store.get_attempt(old_attempt.id) is None
    assert await store.get_quiz(fresh.id) == fresh
    assert await store.get_attempt(fresh_attempt.id) == fresh_attempt


async def test_cleanup_with_nothing_expired(store, clock):
    quiz = await store.create_quiz(quiz_data())
    clock.advance(hours=1)
    assert await store.cleanup_expired(timedelta(hours=6)) == 0
    assert await store.get_quiz(quiz.id) == quiz


def test_build_store_backends():
    assert isinstance(build_store("memory"), MemoryQuizStore)
    with pytest.raises(ValueError):
        build_store("sqlite")


class RacingRedis(fakeredis.FakeAsyncRedis):
    """Runs the queued callbacks right after a pipeline's first SMEMBERS returns."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.after_smembers = []

    def pipeline(self, transaction=True, shard_hint=None):
        pipe = super().pipeline(transaction, shard_hint)
        original = pipe.smembers

        async def smembers(*args):
            members = await original(*args)
            if self.after_smembers:
                await self.after_smembers.pop(0)()
            return members

        pipe.smembers = smembers
        return pipe


async def test_attempt_recorded_during_redis_cleanup_is_not_orphaned(clock):
    server = fakeredis.FakeServer()
    sweeper = RedisQuizStore(client=RacingRedis(server=server, decode_responses=True), clock=clock)
    api = RedisQuizStore(client=fakeredis.FakeAsyncRedis(server=server, decode_responses=True), clock=clock)

    old = await api.create_quiz(quiz_data("old.pdf"))
    clock.advance(hours=7)
    late = []

    async def submit_late_attempt():
        late.append(await api.create_attempt(attempt_data(old.id)))

    sweeper.redis.after_smembers.append(submit_late_attempt)
    removed = await sweeper.cleanup_expired(timedelta(hours=6))

    assert removed == 1
    assert late and sweeper.redis.after_smembers == []
    assert await api.get_quiz(old.id) is None
    assert await api.get_attempt(late[0].id) is None
    await sweeper.close()
    await api.close()
