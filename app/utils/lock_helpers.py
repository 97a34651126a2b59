from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums.lock_entity import LockEntity
from app.models.operations.lock_transition_models import LockTransition


def record_lock_transition(
    db: AsyncSession,
    *,
    entity: LockEntity,
    reference: str,
    from_state: str,
    to_state: str,
    actor: str,
) -> None:
    db.add(
        LockTransition(
            entity=entity,
            reference=reference,
            from_state=from_state,
            to_state=to_state,
            actor=actor,
        )
    )
