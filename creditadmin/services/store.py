"""Persistence for users and balances, behind the small interface the balance command needs."""

import math
import re
from datetime import datetime
from typing import Protocol

from beanie import PydanticObjectId
from pymongo import ReturnDocument

from creditadmin.core.config import BalanceConfig
from creditadmin.models.balance import Balance
from creditadmin.models.user import User

INTEGER_RE = re.compile(r"[+-]?\d+", re.ASCII)
DECIMAL_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


class BalanceStore(Protocol):
    async def find_user_by_email(self, email: str) -> User | None: ...

    async def list_all_users(self) -> list[User]: ...

    async def find_balance_by_user_id(self, user_id: PydanticObjectId) -> Balance | None: ...

    async def upsert_balance(self, user_id: PydanticObjectId, token_credits: str) -> Balance | None:
        """Create or overwrite the user's balance atomically; return the resulting record."""
        ...


def coerce_credits(value: str | int | float) -> int | float:
    """Cast an amount to the stored number type: int when integral, else float.

    Only plain ASCII decimal notation is accepted; `1_000`, non-ASCII digits and
    `inf`/`nan` are rejected.
    """
    text = str(value).strip()
    if INTEGER_RE.fullmatch(text):
        return int(text)
    if not DECIMAL_RE.fullmatch(text):
        raise ValueError(f'Cast to Number failed for value "{value}"')
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f'Cast to Number failed for value "{value}"')
    return number


class MongoBalanceStore:
    """BalanceStore over the Beanie models. Requires init_db() to have run."""

    def __init__(self, balance_config: BalanceConfig | None = None):
        self.balance_config = balance_config or BalanceConfig()

    async def find_user_by_email(self, email: str) -> User | None:
        return await User.find_one(User.email == email)

    async def list_all_users(self) -> list[User]:
        return await User.find_all().to_list()

    async def find_balance_by_user_id(self, user_id: PydanticObjectId) -> Balance | None:
        return await Balance.find_one(Balance.user == user_id)

    def _insert_defaults(self) -> dict:
        cfg = self.balance_config
        return {
            "autoRefillEnabled": cfg.auto_refill_enabled,
            "refillIntervalValue": cfg.refill_interval_value,
            "refillIntervalUnit": cfg.refill_interval_unit,
            "refillAmount": cfg.refill_amount,
            "lastRefill": datetime.utcnow(),
        }

    async def upsert_balance(self, user_id: PydanticObjectId, token_credits: str) -> Balance | None:
        credits = coerce_credits(token_credits)
        # single findAndModify keyed by user: repeated runs converge on one document per user
        raw = await Balance.get_motor_collection().find_one_and_update(
            {"user": user_id},
            {
                "$set": {"tokenCredits": credits},
                "$setOnInsert": self._insert_defaults(),
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        if raw is None:
            return None
        return Balance.model_validate(raw)
