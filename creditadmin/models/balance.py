from datetime import datetime

from beanie import Document, PydanticObjectId
from pydantic import Field


class Balance(Document):
    """Current token credits per user; one document per user, overwritten on assignment."""
    user: PydanticObjectId
    token_credits: int | float | None = Field(default=0, alias="tokenCredits")
    # refill settings are only written when the document is first created
    auto_refill_enabled: bool = Field(default=False, alias="autoRefillEnabled")
    refill_interval_value: int = Field(default=30, alias="refillIntervalValue")
    refill_interval_unit: str = Field(default="days", alias="refillIntervalUnit")
    refill_amount: int = Field(default=0, alias="refillAmount")
    last_refill: datetime = Field(default_factory=datetime.utcnow, alias="lastRefill")

    class Settings:
        name = "balances"
        # non-unique, matching the user_1 index existing deployments already carry
        indexes = [[("user", 1)]]
