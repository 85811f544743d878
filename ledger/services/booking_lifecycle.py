"""
Booking Lifecycle Engine

State machine over a session's (status, payment_status):

    requested --confirm(educator)--> confirmed --complete(educator)--> completed
    requested|confirmed --cancel(educator or student)--> cancelled (terminal)
    completed: pending --pay(student)--> paid --refund(educator)--> refunded

Every request is checked in this order: the session exists, the actor is one
of its parties, the party may perform the action, and the action is reachable
from the current state. The write is a compare-and-set in the backend, so of
two racing requests only one can succeed from a given state.
"""
import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional, Tuple

from ledger import schemas
from ledger.errors import ForbiddenError, InvalidTransitionError, ValidationFailedError
from ledger.schemas import PaymentStatus, SessionAction, SessionStatus, UserRole, parse_payload
from ledger.services.entity_store import EntityStore
from ledger.storage.base import EntityKind

logger = logging.getLogger(__name__)

State = Tuple[str, str]


@dataclass(frozen=True)
class Transition:
    """One row of the lifecycle table; None means 'unchanged' / 'any'"""

    parties: FrozenSet[str]
    from_status: FrozenSet[str]
    to_status: Optional[str] = None
    from_payment: Optional[str] = None
    to_payment: Optional[str] = None


TRANSITIONS = {
    SessionAction.CONFIRM: Transition(
        parties=frozenset({UserRole.EDUCATOR.value}),
        from_status=frozenset({SessionStatus.REQUESTED.value}),
        to_status=SessionStatus.CONFIRMED.value,
    ),
    SessionAction.CANCEL: Transition(
        parties=frozenset({UserRole.EDUCATOR.value, UserRole.STUDENT.value}),
        from_status=frozenset({SessionStatus.REQUESTED.value, SessionStatus.CONFIRMED.value}),
        to_status=SessionStatus.CANCELLED.value,
    ),
    SessionAction.COMPLETE: Transition(
        parties=frozenset({UserRole.EDUCATOR.value}),
        from_status=frozenset({SessionStatus.CONFIRMED.value}),
        to_status=SessionStatus.COMPLETED.value,
    ),
    SessionAction.PAY: Transition(
        parties=frozenset({UserRole.STUDENT.value}),
        from_status=frozenset({SessionStatus.COMPLETED.value}),
        from_payment=PaymentStatus.PENDING.value,
        to_payment=PaymentStatus.PAID.value,
    ),
    SessionAction.REFUND: Transition(
        parties=frozenset({UserRole.EDUCATOR.value}),
        from_status=frozenset({SessionStatus.COMPLETED.value}),
        from_payment=PaymentStatus.PAID.value,
        to_payment=PaymentStatus.REFUNDED.value,
    ),
}

INITIAL_STATE: State = (SessionStatus.REQUESTED.value, PaymentStatus.PENDING.value)


def parse_action(action: Any) -> SessionAction:
    try:
        return SessionAction(action)
    except ValueError:
        raise ValidationFailedError("action", f"unknown session action '{action}'") from None


def next_state(action: SessionAction, status: str, payment_status: str) -> Optional[State]:
    """Target (status, payment_status) for an action, or None if unreachable"""
    transition = TRANSITIONS[action]
    if status not in transition.from_status:
        return None
    if transition.from_payment is not None and payment_status != transition.from_payment:
        return None
    return (transition.to_status or status, transition.to_payment or payment_status)


class BookingLifecycleEngine:
    """Creates bookings and applies role-checked lifecycle transitions"""

    def __init__(self, store: EntityStore):
        self.store = store
        self.backend = store.backend

    async def party_of(self, actor: schemas.ActingIdentity, session: schemas.Session) -> Optional[str]:
        """The actor's relation to the session: 'educator', 'student' or None"""
        if actor.role == UserRole.STUDENT and session.student_id == actor.user_id:
            return UserRole.STUDENT.value
        if actor.role == UserRole.EDUCATOR:
            profile = await self.backend.get(EntityKind.EDUCATOR_PROFILE, session.educator_id)
            if profile is not None and profile["user_id"] == actor.user_id:
                return UserRole.EDUCATOR.value
        return None

    async def book_session(self, actor: Any, data: Any) -> schemas.Session:
        """
        Create a booking as a student.

        Raises:
            ValidationFailedError: On missing or out-of-range fields
            ForbiddenError: If the actor is not the booking student
            NotFoundError: If the educator or student does not exist
        """
        actor = parse_payload(schemas.ActingIdentity, actor)
        payload = parse_payload(schemas.SessionCreate, data)
        if actor.role != UserRole.STUDENT or actor.user_id != payload.student_id:
            raise ForbiddenError("Students can only book sessions for themselves")

        session = await self.store.create_session(payload)
        logger.info(f"Session {session.id} booked by student {actor.user_id} with educator {session.educator_id}")
        return session

    async def apply(self, actor: Any, session_id: int, action: Any) -> schemas.Session:
        """
        Apply a lifecycle action to a session.

        Raises:
            NotFoundError: If the session does not exist
            ForbiddenError: If the actor is not a party or the party may not act
            InvalidTransitionError: If the action is unreachable from the current state
        """
        actor = parse_payload(schemas.ActingIdentity, actor)
        action = parse_action(action)
        transition = TRANSITIONS[action]

        session = await self.store.get_session(session_id)
        party = await self.party_of(actor, session)
        if party is None:
            raise ForbiddenError(
                f"User {actor.user_id} is not a party to session {session_id}",
                {"session_id": session_id, "action": action.value},
            )
        if party not in transition.parties:
            raise ForbiddenError(
                f"The {party} may not {action.value} session {session_id}",
                {"session_id": session_id, "action": action.value},
            )

        while True:
            current = (session.status, session.payment_status)
            target = next_state(action, *current)
            if target is None:
                raise InvalidTransitionError(
                    f"Cannot {action.value} session {session_id} in state {current[0]}/{current[1]}",
                    {"session_id": session_id, "action": action.value, "status": current[0], "payment_status": current[1]},
                )

            row = await self.backend.compare_and_set_session(session_id, current, target)
            if row is not None:
                logger.info(
                    f"Session {session_id}: {action.value} by {party} {actor.user_id}, "
                    f"{current[0]}/{current[1]} -> {target[0]}/{target[1]}"
                )
                return schemas.Session.model_validate(row)

            # State moved underneath us; re-evaluate against the fresh row
            logger.debug(f"Session {session_id} changed during {action.value}, re-reading")
            session = await self.store.get_session(session_id)

    async def confirm(self, actor: Any, session_id: int) -> schemas.Session:
        return await self.apply(actor, session_id, SessionAction.CONFIRM)

    async def cancel(self, actor: Any, session_id: int) -> schemas.Session:
        return await self.apply(actor, session_id, SessionAction.CANCEL)

    async def complete(self, actor: Any, session_id: int) -> schemas.Session:
        return await self.apply(actor, session_id, SessionAction.COMPLETE)

    async def pay(self, actor: Any, session_id: int) -> schemas.Session:
        return await self.apply(actor, session_id, SessionAction.PAY)

    async def refund(self, actor: Any, session_id: int) -> schemas.Session:
        return await self.apply(actor, session_id, SessionAction.REFUND)

    async def allowed_actions(self, actor: Any, session: schemas.Session) -> List[SessionAction]:
        """Actions the actor could apply to the session right now"""
        actor = parse_payload(schemas.ActingIdentity, actor)
        party = await self.party_of(actor, session)
        if party is None:
            return []
        return [
            action
            for action, transition in TRANSITIONS.items()
            if party in transition.parties
            and next_state(action, session.status, session.payment_status) is not None
        ]
