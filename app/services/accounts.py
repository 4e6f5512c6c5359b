"""Account store access: authentication and the subscription/trial gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import Account, Subscription
from ..errors import AuthError
from ..utils import hash_token, mask_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AccountIdentity:
    id: str
    email: str
    name: str | None = None


def subscription_is_active(subscription: Subscription, *, now: datetime) -> bool:
    """Active, or cancelled but still inside the paid period."""

    expires_at = subscription.expires_at
    if subscription.status == "active":
        return expires_at is None or expires_at > now
    if subscription.status == "cancelled":
        return expires_at is not None and expires_at > now
    return False


class AccountStore:
    """Read-only view over the accounts and subscriptions tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_user(self, account_id: str) -> AccountIdentity | None:
        async with self._session_factory() as session:
            account = await session.get(Account, account_id)
        if account is None:
            return None
        return AccountIdentity(id=account.id, email=account.email, name=account.name)

    async def authenticate(self, token: str | None) -> AccountIdentity:
        """Resolve an opaque bearer token to an account or raise ``AuthError``."""

        if not token:
            raise AuthError("Missing authentication token")
        stmt = select(Account).where(Account.api_token_hash == hash_token(token))
        try:
            async with self._session_factory() as session:
                account = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Account lookup failed during authentication")
            raise AuthError("Authentication failed") from exc
        if account is None:
            raise AuthError("Invalid or expired token")
        return AccountIdentity(id=account.id, email=account.email, name=account.name)

    async def has_active_access(
        self, account_id: str, *, now: datetime | None = None
    ) -> bool:
        now = now or datetime.utcnow()
        async with self._session_factory() as session:
            account = await session.get(Account, account_id)
            if account is None:
                return False
            if account.trial_ends_at is not None and account.trial_ends_at > now:
                return True
            result = await session.execute(
                select(Subscription).where(Subscription.account_id == account_id)
            )
            subscriptions = result.scalars().all()
        return any(subscription_is_active(sub, now=now) for sub in subscriptions)


class AccessGate:
    """Entitlement check that denies access when the store cannot answer."""

    def __init__(self, store: AccountStore):
        self._store = store

    async def has_access(self, account_id: str) -> bool:
        try:
            allowed = await self._store.has_active_access(account_id)
        except (SQLAlchemyError, OSError):
            logger.exception(
                "Account store unavailable; denying access for %s",
                mask_identifier(account_id),
            )
            return False
        if not allowed:
            logger.info(
                "Access denied for %s: no active subscription or trial",
                mask_identifier(account_id),
            )
        return allowed
