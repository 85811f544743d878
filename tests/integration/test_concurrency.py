"""
Concurrency tests

Concurrent coroutines against both backends: racing transitions, racing
creates and reads interleaved with writes.
"""
import asyncio

import pytest

from ledger.errors import ConflictError, InvalidTransitionError
from ledger.storage.base import EntityKind

from factories import session_payload, user_payload


def split_results(results):
    successes = [result for result in results if not isinstance(result, Exception)]
    failures = [result for result in results if isinstance(result, Exception)]
    return successes, failures


class TestConcurrentTransitions:

    @pytest.mark.asyncio
    async def test_concurrent_cancels_single_winner(self, marketplace):
        """Exactly one of two concurrent cancels wins"""
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )
        await service.lifecycle.confirm(marketplace.educator_actor, session.id)

        results = await asyncio.gather(
            service.lifecycle.cancel(marketplace.student_actor, session.id),
            service.lifecycle.cancel(marketplace.educator_actor, session.id),
            return_exceptions=True,
        )

        successes, failures = split_results(results)
        assert len(successes) == 1, f"expected one winner, got {results}"
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidTransitionError)
        assert successes[0].status == "cancelled"
        assert (await service.store.get_session(session.id)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_confirm_races_cancel(self, marketplace):
        """Cancel is legal from requested and confirmed, so it wins either ordering"""
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )

        results = await asyncio.gather(
            service.lifecycle.confirm(marketplace.educator_actor, session.id),
            service.lifecycle.cancel(marketplace.student_actor, session.id),
            return_exceptions=True,
        )

        confirm_result, cancel_result = results
        assert cancel_result.status == "cancelled"
        assert not isinstance(confirm_result, Exception) or isinstance(confirm_result, InvalidTransitionError)
        assert (await service.store.get_session(session.id)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_concurrent_pay(self, marketplace):
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )
        await service.lifecycle.confirm(marketplace.educator_actor, session.id)
        await service.lifecycle.complete(marketplace.educator_actor, session.id)

        results = await asyncio.gather(
            *[service.lifecycle.pay(marketplace.student_actor, session.id) for _ in range(3)],
            return_exceptions=True,
        )

        successes, failures = split_results(results)
        assert len(successes) == 1
        assert all(isinstance(failure, InvalidTransitionError) for failure in failures)


class TestConcurrentCreates:

    @pytest.mark.asyncio
    async def test_ids_unique_under_concurrency(self, service):
        users = await asyncio.gather(
            *[service.register_user(user_payload(f"student{index}", "student")) for index in range(10)]
        )

        ids = [user.id for user in users]
        assert len(set(ids)) == 10
        assert sorted(ids) == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_duplicate_username_race(self, service):
        results = await asyncio.gather(
            service.register_user(user_payload("alex", "student", email="alex1@example.com")),
            service.register_user(user_payload("alex", "student", email="alex2@example.com")),
            return_exceptions=True,
        )

        successes, failures = split_results(results)
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], ConflictError)
        assert len(await service.store.list_where(EntityKind.USER, username="alex")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_assign_yields_one_link(self, marketplace):
        service = marketplace.service
        educator_id, subject_id = marketplace.educator.id, marketplace.algebra.id

        links = await asyncio.gather(
            *[service.assign_subject(marketplace.educator_actor, educator_id, subject_id) for _ in range(4)]
        )

        assert len({link.id for link in links}) == 1
        assert len(await service.store.list_where(EntityKind.EDUCATOR_SUBJECT, educator_id=educator_id)) == 1

    @pytest.mark.asyncio
    async def test_review_count_after_concurrent_inserts(self, marketplace):
        service = marketplace.service
        educator_id = marketplace.educator.id

        await asyncio.gather(*[
            service.submit_review(
                marketplace.student_actor,
                {"educator_id": educator_id, "student_id": marketplace.student.id, "rating": rating},
            )
            for rating in (1, 2, 3, 4, 5)
        ])

        ratings = await service.ratings_for(educator_id)
        assert ratings.review_count == 5
        assert ratings.average_rating == 3.0
