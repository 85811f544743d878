"""
Shared fixtures

Every test that takes ``backend`` runs twice: once on the transient backend
and once on the durable backend over a temporary SQLite file, so a single
suite checks that both behave identically.
"""
from types import SimpleNamespace

import pytest
import pytest_asyncio

from ledger.database import create_engine
from ledger.services.ledger_service import LedgerService
from ledger.storage import DatabaseBackend, MemoryBackend

from factories import actor, profile_payload, user_payload


@pytest_asyncio.fixture(params=["memory", "database"])
async def backend(request, tmp_path):
    """Transient and durable backends behind the same contract"""
    if request.param == "memory":
        backend = MemoryBackend()
    else:
        backend = DatabaseBackend(create_engine(f"sqlite:///{tmp_path / 'ledger.db'}"))
        await backend.create_schema()

    yield backend

    await backend.close()


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def service(backend):
    return LedgerService(backend)


@pytest_asyncio.fixture
async def marketplace(service):
    """
    One educator (with profile), two students, a category and two subjects.

    Returned as a namespace: educator_user, educator, student, other_student,
    category, algebra, calculus, plus the matching acting identities.
    """
    educator_user = await service.register_user(user_payload("sarah", "educator"))
    student = await service.register_user(user_payload("alex", "student"))
    other_student = await service.register_user(user_payload("jennifer", "student"))
    educator = await service.register_educator_profile(actor(educator_user), profile_payload(educator_user.id))
    category = await service.create_category({"name": "Mathematics", "description": "Mathematics and Statistics"})
    algebra = await service.create_subject({"category_id": category.id, "name": "Algebra"})
    calculus = await service.create_subject({"category_id": category.id, "name": "Calculus"})

    return SimpleNamespace(
        service=service,
        educator_user=educator_user,
        educator=educator,
        student=student,
        other_student=other_student,
        category=category,
        algebra=algebra,
        calculus=calculus,
        educator_actor=actor(educator_user),
        student_actor=actor(student),
        other_student_actor=actor(other_student),
    )
