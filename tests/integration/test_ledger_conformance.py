"""
Conformance tests for the ledger

Every test runs against both storage backends through the parametrized
``backend`` fixture; the two must be observably identical.
"""
from datetime import datetime

import pytest

from ledger.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from ledger.storage.base import EntityKind

from factories import actor, profile_payload, session_payload, user_payload


class TestBookingScenarios:
    """End-to-end lifecycle scenarios"""

    @pytest.mark.asyncio
    async def test_full_booking_and_review(self, marketplace):
        service = marketplace.service
        educator, student = marketplace.educator, marketplace.student

        session = await service.book_session(marketplace.student_actor, session_payload(educator.id, student.id))
        assert (session.status, session.payment_status) == ("requested", "pending")
        review = {"educator_id": educator.id, "student_id": student.id, "session_id": session.id, "rating": 5}

        # Reviewing before completion is rejected
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.submit_review(marketplace.student_actor, review)
        assert exc_info.value.field == "session_id"

        confirmed = await service.transition_session(marketplace.educator_actor, session.id, "confirm")
        assert confirmed.status == "confirmed"

        completed = await service.transition_session(marketplace.educator_actor, session.id, "complete")
        assert completed.status == "completed"

        paid = await service.transition_session(marketplace.student_actor, session.id, "pay")
        assert (paid.status, paid.payment_status) == ("completed", "paid")

        created = await service.submit_review(marketplace.student_actor, review)
        assert created.session_id == session.id
        assert isinstance(created.created_at, datetime)

        ratings = await service.ratings_for(educator.id)
        assert (ratings.average_rating, ratings.review_count) == (5.0, 1)

    @pytest.mark.asyncio
    async def test_student_cannot_confirm(self, marketplace):
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )

        with pytest.raises(ForbiddenError):
            await service.transition_session(marketplace.student_actor, session.id, "confirm")

        unchanged = await service.get_session(marketplace.student_actor, session.id)
        assert unchanged.status == "requested"

    @pytest.mark.asyncio
    async def test_subject_with_missing_category(self, marketplace):
        service = marketplace.service
        before = await service.list_subjects()

        with pytest.raises(NotFoundError) as exc_info:
            await service.create_subject({"category_id": 999, "name": "Topology"})

        assert exc_info.value.kind == "category"
        assert exc_info.value.entity_id == 999
        assert await service.list_subjects() == before

    @pytest.mark.asyncio
    async def test_observed_states_follow_the_table(self, marketplace):
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )
        observed = [(session.status, session.payment_status)]
        steps = [
            (marketplace.educator_actor, "confirm"),
            (marketplace.educator_actor, "complete"),
            (marketplace.student_actor, "pay"),
            (marketplace.educator_actor, "refund"),
        ]
        for acting, action in steps:
            updated = await service.transition_session(acting, session.id, action)
            observed.append((updated.status, updated.payment_status))

        assert observed == [
            ("requested", "pending"),
            ("confirmed", "pending"),
            ("completed", "pending"),
            ("completed", "paid"),
            ("completed", "refunded"),
        ]

    @pytest.mark.asyncio
    async def test_cancel_by_either_party(self, marketplace):
        service = marketplace.service
        payload = session_payload(marketplace.educator.id, marketplace.student.id)

        first = await service.book_session(marketplace.student_actor, payload)
        cancelled = await service.transition_session(marketplace.student_actor, first.id, "cancel")
        assert cancelled.status == "cancelled"

        second = await service.book_session(marketplace.student_actor, payload)
        await service.transition_session(marketplace.educator_actor, second.id, "confirm")
        cancelled = await service.transition_session(marketplace.educator_actor, second.id, "cancel")
        assert cancelled.status == "cancelled"

        with pytest.raises(InvalidTransitionError):
            await service.transition_session(marketplace.educator_actor, second.id, "confirm")

    @pytest.mark.asyncio
    async def test_status_and_payment_targets(self, marketplace):
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )

        await service.update_session_status(marketplace.educator_actor, session.id, "confirmed")
        await service.update_session_status(marketplace.educator_actor, session.id, "completed")
        paid = await service.update_payment_status(marketplace.student_actor, session.id, "paid")
        assert paid.payment_status == "paid"

        with pytest.raises(ValidationFailedError):
            await service.update_session_status(marketplace.educator_actor, session.id, "requested")
        with pytest.raises(ValidationFailedError):
            await service.update_payment_status(marketplace.student_actor, session.id, "pending")

    @pytest.mark.asyncio
    async def test_sessions_enriched_for_both_sides(self, marketplace):
        service = marketplace.service
        await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )

        as_student = await service.sessions_for(marketplace.student_actor)
        as_educator = await service.sessions_for(marketplace.educator_actor, as_educator=True)

        assert len(as_student) == len(as_educator) == 1
        assert as_student[0].educator.user.username == "sarah"
        assert as_educator[0].student.username == "alex"
        assert as_student[0].formatted_start_time == "Apr 29, 2025, 10:00 AM"
        assert as_student[0].formatted_end_time == "11:00 AM"
        assert await service.sessions_for(marketplace.other_student_actor) == []

        with pytest.raises(ForbiddenError):
            await service.sessions_for(marketplace.student_actor, as_educator=True)

    @pytest.mark.asyncio
    async def test_educator_without_profile_not_found(self, marketplace):
        service = marketplace.service
        maria = await service.register_user(user_payload("maria", "educator"))

        with pytest.raises(NotFoundError) as exc_info:
            await service.sessions_for(actor(maria), as_educator=True)

        assert exc_info.value.details == {"kind": "educator_profile", "user_id": maria.id}

    @pytest.mark.asyncio
    async def test_non_party_cannot_read_session(self, marketplace):
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )

        with pytest.raises(ForbiddenError):
            await service.get_session(marketplace.other_student_actor, session.id)


class TestEntityStore:
    """Creation rules shared by both backends"""

    @pytest.mark.asyncio
    async def test_round_trip(self, service):
        submitted = user_payload("maria", "educator", bio="Linguist", profile_image="https://example.com/m.png")
        user = await service.register_user(submitted)
        fetched = await service.get_user(user.id)
        assert fetched.model_dump() == {**submitted, "is_verified": False, "id": user.id}

        profile_data = profile_payload(user.id, experience="8 years", teaching_method="Immersion")
        profile = await service.store.create_educator_profile(profile_data)
        fetched_profile = await service.store.get_educator_profile(profile.id)
        for field, value in profile_data.items():
            assert getattr(fetched_profile, field) == value, f"{field} changed on round trip"

        category = await service.create_category({"name": "Languages", "educator_count": 150})
        assert (await service.store.get_category(category.id)).model_dump() == category.model_dump()

    @pytest.mark.asyncio
    async def test_ids_are_sequential_per_kind(self, service):
        first = await service.register_user(user_payload("a", "student"))
        second = await service.register_user(user_payload("b", "student"))
        category = await service.create_category({"name": "Music"})

        assert (first.id, second.id) == (1, 2)
        assert category.id == 1

    @pytest.mark.asyncio
    async def test_duplicate_username_and_email(self, marketplace):
        service = marketplace.service

        with pytest.raises(ConflictError) as exc_info:
            await service.register_user(user_payload("sarah", "student", email="other@example.com"))
        assert exc_info.value.field == "username"

        with pytest.raises(ConflictError) as exc_info:
            await service.register_user(user_payload("someone", "student", email="sarah@example.com"))
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_duplicate_category_name(self, marketplace):
        with pytest.raises(ConflictError) as exc_info:
            await marketplace.service.create_category({"name": "Mathematics"})
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_one_profile_per_educator(self, marketplace):
        with pytest.raises(ConflictError) as exc_info:
            await marketplace.service.register_educator_profile(
                marketplace.educator_actor,
                profile_payload(marketplace.educator_user.id),
            )
        assert exc_info.value.field == "user_id"

    @pytest.mark.asyncio
    async def test_profile_requires_educator_user(self, marketplace):
        with pytest.raises(ValidationFailedError) as exc_info:
            await marketplace.service.store.create_educator_profile(profile_payload(marketplace.student.id))
        assert exc_info.value.field == "user_id"

        with pytest.raises(NotFoundError):
            await marketplace.service.store.create_educator_profile(profile_payload(404))

    @pytest.mark.asyncio
    async def test_only_owner_creates_profile(self, service):
        educator_user = await service.register_user(user_payload("james", "educator"))
        impostor = await service.register_user(user_payload("eve", "educator"))

        with pytest.raises(ForbiddenError):
            await service.register_educator_profile(actor(impostor), profile_payload(educator_user.id))
        assert await service.store.get_educator_profile_by_user_id(educator_user.id) is None

    @pytest.mark.asyncio
    async def test_session_requires_student_role(self, marketplace):
        with pytest.raises(ValidationFailedError) as exc_info:
            await marketplace.service.store.create_session(
                session_payload(marketplace.educator.id, marketplace.educator_user.id)
            )
        assert exc_info.value.field == "student_id"

    @pytest.mark.asyncio
    async def test_session_requires_educator(self, marketplace):
        with pytest.raises(NotFoundError) as exc_info:
            await marketplace.service.book_session(
                marketplace.student_actor,
                session_payload(99, marketplace.student.id),
            )
        assert exc_info.value.kind == "educator_profile"
        assert await marketplace.service.store.sessions_by_student(marketplace.student.id) == []

    @pytest.mark.asyncio
    async def test_alternate_key_lookups(self, marketplace):
        store = marketplace.service.store

        assert (await store.get_user_by_username("alex")).id == marketplace.student.id
        assert (await store.get_user_by_email("sarah@example.com")).id == marketplace.educator_user.id
        assert (await store.get_educator_profile_by_user_id(marketplace.educator_user.id)).id == marketplace.educator.id
        assert await store.get_user_by_username("nobody") is None

    @pytest.mark.asyncio
    async def test_list_where_filters_and_orders(self, marketplace):
        students = await marketplace.service.store.list_where(EntityKind.USER, role="student")
        assert [user.username for user in students] == ["alex", "jennifer"]


class TestSubjects:
    """Educator/subject links"""

    @pytest.mark.asyncio
    async def test_assign_is_idempotent(self, marketplace):
        service = marketplace.service
        educator_id, subject_id = marketplace.educator.id, marketplace.algebra.id

        first = await service.assign_subject(marketplace.educator_actor, educator_id, subject_id)
        second = await service.assign_subject(marketplace.educator_actor, educator_id, subject_id)

        assert first.id == second.id
        links = await service.store.list_where(EntityKind.EDUCATOR_SUBJECT, educator_id=educator_id)
        assert len(links) == 1

    @pytest.mark.asyncio
    async def test_assign_requires_existing_subject(self, marketplace):
        with pytest.raises(NotFoundError) as exc_info:
            await marketplace.service.assign_subject(marketplace.educator_actor, marketplace.educator.id, 321)
        assert exc_info.value.kind == "subject"

    @pytest.mark.asyncio
    async def test_only_owner_assigns(self, marketplace):
        with pytest.raises(ForbiddenError):
            await marketplace.service.assign_subject(
                marketplace.student_actor, marketplace.educator.id, marketplace.algebra.id
            )

    @pytest.mark.asyncio
    async def test_remove_and_reassign(self, marketplace):
        service = marketplace.service
        educator_id, subject_id = marketplace.educator.id, marketplace.algebra.id

        link = await service.assign_subject(marketplace.educator_actor, educator_id, subject_id)
        assert await service.remove_subject(marketplace.educator_actor, educator_id, subject_id) is True
        assert await service.remove_subject(marketplace.educator_actor, educator_id, subject_id) is False

        relinked = await service.assign_subject(marketplace.educator_actor, educator_id, subject_id)
        assert relinked.id > link.id, "link ids must never be reused"

    @pytest.mark.asyncio
    async def test_category_detail(self, marketplace):
        detail = await marketplace.service.category_detail(marketplace.category.id)
        assert [subject.name for subject in detail.subjects] == ["Algebra", "Calculus"]

        with pytest.raises(NotFoundError):
            await marketplace.service.category_detail(999)


class TestEducatorViews:
    """Enriched educator listings and detail"""

    @pytest.mark.asyncio
    async def test_detail_includes_subjects_reviews_and_ratings(self, marketplace):
        service = marketplace.service
        educator_id = marketplace.educator.id
        await service.assign_subject(marketplace.educator_actor, educator_id, marketplace.calculus.id)
        for acting, student, rating in [
            (marketplace.student_actor, marketplace.student, 5),
            (marketplace.other_student_actor, marketplace.other_student, 4),
        ]:
            await service.submit_review(acting, {"educator_id": educator_id, "student_id": student.id, "rating": rating})

        detail = await service.educator_detail(educator_id)

        assert detail.user.username == "sarah"
        assert [subject.name for subject in detail.subjects] == ["Calculus"]
        assert detail.subjects[0].category.name == "Mathematics"
        assert [review.student.username for review in detail.reviews] == ["alex", "jennifer"]
        assert (detail.average_rating, detail.review_count) == (4.5, 2)

    @pytest.mark.asyncio
    async def test_list_by_subject_and_category(self, service):
        users = {}
        educators = {}
        for name in ("sarah", "james", "maria"):
            users[name] = await service.register_user(user_payload(name, "educator"))
            educators[name] = await service.register_educator_profile(actor(users[name]), profile_payload(users[name].id))
        maths = await service.create_category({"name": "Mathematics"})
        languages = await service.create_category({"name": "Languages"})
        algebra = await service.create_subject({"category_id": maths.id, "name": "Algebra"})
        geometry = await service.create_subject({"category_id": maths.id, "name": "Geometry"})
        spanish = await service.create_subject({"category_id": languages.id, "name": "Spanish"})

        await service.assign_subject(actor(users["sarah"]), educators["sarah"].id, algebra.id)
        await service.assign_subject(actor(users["sarah"]), educators["sarah"].id, geometry.id)
        await service.assign_subject(actor(users["james"]), educators["james"].id, geometry.id)
        await service.assign_subject(actor(users["maria"]), educators["maria"].id, spanish.id)

        by_subject = await service.list_educators(subject_id=geometry.id)
        by_category = await service.list_educators(category_id=maths.id)
        limited = await service.list_educators(limit=2)

        assert [educator.user.username for educator in by_subject] == ["sarah", "james"]
        assert [educator.user.username for educator in by_category] == ["sarah", "james"]
        assert [educator.user.username for educator in limited] == ["sarah", "james"]
        assert len(await service.list_educators()) == 3
        assert by_category[0].review_count == 0

        with pytest.raises(NotFoundError):
            await service.list_educators(subject_id=999)

    @pytest.mark.asyncio
    async def test_reviews_for_unknown_educator(self, service):
        with pytest.raises(NotFoundError):
            await service.reviews_for_educator(5)


class TestReviews:
    """Review creation rules"""

    @pytest.mark.asyncio
    async def test_rating_count_tracks_inserts(self, marketplace):
        service = marketplace.service
        educator_id = marketplace.educator.id

        for expected, rating in enumerate([3, 4, 5], start=1):
            await service.submit_review(
                marketplace.student_actor,
                {"educator_id": educator_id, "student_id": marketplace.student.id, "rating": rating},
            )
            assert (await service.ratings_for(educator_id)).review_count == expected

        assert (await service.ratings_for(educator_id)).average_rating == 4.0

    @pytest.mark.asyncio
    async def test_student_reviews_as_themselves(self, marketplace):
        with pytest.raises(ForbiddenError):
            await marketplace.service.submit_review(
                marketplace.other_student_actor,
                {"educator_id": marketplace.educator.id, "student_id": marketplace.student.id, "rating": 5},
            )

    @pytest.mark.asyncio
    async def test_session_must_match_pair(self, marketplace):
        service = marketplace.service
        session = await service.book_session(
            marketplace.student_actor,
            session_payload(marketplace.educator.id, marketplace.student.id),
        )
        await service.transition_session(marketplace.educator_actor, session.id, "confirm")
        await service.transition_session(marketplace.educator_actor, session.id, "complete")

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.submit_review(
                marketplace.other_student_actor,
                {
                    "educator_id": marketplace.educator.id,
                    "student_id": marketplace.other_student.id,
                    "session_id": session.id,
                    "rating": 4,
                },
            )
        assert exc_info.value.field == "session_id"

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, marketplace):
        with pytest.raises(ValidationFailedError) as exc_info:
            await marketplace.service.submit_review(
                marketplace.student_actor,
                {"educator_id": marketplace.educator.id, "student_id": marketplace.student.id, "rating": 6},
            )
        assert exc_info.value.field == "rating"
        assert (await marketplace.service.ratings_for(marketplace.educator.id)).review_count == 0


class TestTestimonials:

    @pytest.mark.asyncio
    async def test_visibility(self, marketplace):
        service = marketplace.service
        shown = await service.submit_testimonial(
            marketplace.student_actor,
            {"user_id": marketplace.student.id, "content": "Calculus finally clicked", "user_role": "Student"},
        )
        hidden = await service.submit_testimonial(
            marketplace.other_student_actor,
            {"user_id": marketplace.other_student.id, "content": "Great Spanish lessons", "user_role": "Professional"},
        )

        await service.hide_testimonial(marketplace.other_student_actor, hidden.id)
        visible = await service.visible_testimonials()

        assert [testimonial.id for testimonial in visible] == [shown.id]
        assert visible[0].user.username == "alex"
        assert (await service.store.get_testimonial(hidden.id)).is_visible is False

        with pytest.raises(NotFoundError):
            await service.hide_testimonial(marketplace.student_actor, 999)

    @pytest.mark.asyncio
    async def test_submitted_as_self_only(self, marketplace):
        with pytest.raises(ForbiddenError):
            await marketplace.service.submit_testimonial(
                marketplace.student_actor,
                {"user_id": marketplace.other_student.id, "content": "Not mine", "user_role": "Student"},
            )

    @pytest.mark.asyncio
    async def test_only_author_hides(self, marketplace):
        service = marketplace.service
        testimonial = await service.submit_testimonial(
            marketplace.student_actor,
            {"user_id": marketplace.student.id, "content": "Calculus finally clicked", "user_role": "Student"},
        )

        with pytest.raises(ForbiddenError):
            await service.hide_testimonial(marketplace.other_student_actor, testimonial.id)

        assert [shown.id for shown in await service.visible_testimonials()] == [testimonial.id]


class TestIdsOutsideStorageRange:
    """Ids no backend can hold behave like ids that were never assigned"""

    HUGE = 2 ** 63

    @pytest.mark.asyncio
    @pytest.mark.parametrize("entity_id", [0, 2 ** 31, 2 ** 63])
    async def test_get_is_not_found(self, marketplace, entity_id):
        with pytest.raises(NotFoundError) as exc_info:
            await marketplace.service.store.get_user(entity_id)
        assert exc_info.value.details == {"kind": "user", "id": entity_id}

    @pytest.mark.asyncio
    async def test_backend_get_returns_nothing(self, marketplace):
        assert await marketplace.service.backend.get(EntityKind.USER, self.HUGE) is None

    @pytest.mark.asyncio
    async def test_lookups_and_listings_are_empty(self, marketplace):
        store = marketplace.service.store

        assert await store.get_educator_profile_by_user_id(self.HUGE) is None
        assert await store.sessions_by_student(self.HUGE) == []
        assert await store.reviews_by_educator(self.HUGE) == []
        assert await store.list_subjects(category_id=self.HUGE) == []

    @pytest.mark.asyncio
    async def test_views_are_not_found(self, marketplace):
        service = marketplace.service

        with pytest.raises(NotFoundError):
            await service.educator_detail(self.HUGE)
        with pytest.raises(NotFoundError):
            await service.ratings_for(self.HUGE)
        with pytest.raises(NotFoundError):
            await service.category_detail(self.HUGE)

    @pytest.mark.asyncio
    async def test_writes_are_not_found(self, marketplace):
        service = marketplace.service

        with pytest.raises(NotFoundError):
            await service.lifecycle.confirm(marketplace.educator_actor, self.HUGE)
        with pytest.raises(NotFoundError):
            await service.hide_testimonial(marketplace.student_actor, self.HUGE)
        assert await service.remove_subject(marketplace.educator_actor, marketplace.educator.id, self.HUGE) is False

    @pytest.mark.asyncio
    async def test_references_fail_validation(self, marketplace):
        with pytest.raises(ValidationFailedError) as exc_info:
            await marketplace.service.book_session(
                marketplace.student_actor,
                session_payload(self.HUGE, marketplace.student.id),
            )
        assert exc_info.value.field == "educator_id"

        with pytest.raises(ValidationFailedError):
            await marketplace.service.sessions_for({"user_id": self.HUGE, "role": "student"})
