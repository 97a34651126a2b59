from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from app.models.support.activity_models import ActivityLog
from app.constants.activity_templates import ACTIVITY_TEMPLATES
from app.constants.activity_codes import ActivityCode
from app.utils.decimal_utils import TWOPLACES
from app.utils.normalize import normalize_ref


def _render(value):
    if isinstance(value, Decimal):
        return value.quantize(TWOPLACES)
    return value


async def emit_activity(
    db: AsyncSession,
    *,
    actor: str,
    code: ActivityCode,
    reference: str | None = None,
    **context,
):
    """Queue an audit row on the session; it commits with the caller's transaction.

    ``reference`` is the AWB, bag, run, club, invoice or account the entry is
    about, stored normalized so the activity listing can filter on it.
    """
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        message = template.format(
            actor=actor,
            **{k: _render(v) for k, v in context.items()},
        )
    except KeyError as e:
        raise ValueError(
            f"Missing activity context key: {e.args[0]} for {code}"
        )

    db.add(
        ActivityLog(
            actor=actor,
            code=code.value,
            reference=normalize_ref(reference) if reference else None,
            message=message,
        )
    )
