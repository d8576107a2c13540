import secrets
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from budget_ledger.core.clock import Clock, SystemClock
from budget_ledger.core.config import get_settings
from budget_ledger.core.errors import Unauthorized, UserNotFound
from budget_ledger.db.session import get_session
from budget_ledger.services.users import get_user


def get_clock() -> Clock:
    return SystemClock(get_settings().timezone)


async def get_current_user_id(
    session: Annotated[AsyncSession, Depends(get_session)],
    x_user_id: Annotated[int | None, Header()] = None,
) -> int:
    """User id resolved upstream by the auth layer and forwarded as ``X-User-Id``.

    The id must name an existing user; anything else is treated as unauthenticated.
    """

    if x_user_id is None:
        raise Unauthorized("Unauthorized")
    try:
        user = await get_user(session, x_user_id)
    except UserNotFound as exc:
        raise Unauthorized("Unauthorized", user_id=x_user_id) from exc
    return user.id


async def require_scheduler(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    expected = f"Bearer {get_settings().cron_secret}"
    if authorization is None or not secrets.compare_digest(authorization, expected):
        raise Unauthorized("Unauthorized")
