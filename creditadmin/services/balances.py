"""Assign a token credit balance to one user (by email) or to every user.

Assignment overwrites the stored value; it is not a ledger entry. A failure on
one user during a bulk run is recorded and the run continues.
"""

from dataclasses import dataclass, field

from creditadmin.core.exceptions import (
    InvalidInputError,
    NotFoundError,
    StoreWriteFailureError,
)
from creditadmin.core.logging import get_logger
from creditadmin.models.balance import Balance
from creditadmin.models.user import User
from creditadmin.services.store import BalanceStore

log = get_logger(__name__)

ALL_USERS_MARKERS = ("all", "--all")


def is_all_users(identifier: str) -> bool:
    return identifier.lower() in ALL_USERS_MARKERS


def display_name(user: User) -> str:
    return user.email or user.username or user.name or "Unknown"


@dataclass
class BulkResult:
    """Outcome of a bulk assignment, in user enumeration order."""
    succeeded: int = 0
    failed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)  # (display name, message)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def record_success(self) -> None:
        self.succeeded += 1

    def record_failure(self, who: str, message: str) -> None:
        self.failed += 1
        self.errors.append((who, message))


async def assign_balance(store: BalanceStore, user: User, amount: str) -> Balance:
    """Upsert the user's balance; raise StoreWriteFailureError unless a record with credits comes back."""
    try:
        result = await store.upsert_balance(user.id, amount)
    except StoreWriteFailureError:
        raise
    except Exception as e:
        raise StoreWriteFailureError(str(e), cause=StoreWriteFailureError.RAISED) from e
    if result is None or result.token_credits is None:
        raise StoreWriteFailureError(
            "Something went wrong while updating the balance",
            cause=StoreWriteFailureError.MISSING_CREDITS,
            details={"result": repr(result)},
        )
    return result


async def set_balance_for_user(store: BalanceStore, email: str, amount: str) -> Balance:
    """Single-user path. Every failure is fatal to the run."""
    if "@" not in email:
        raise InvalidInputError("Invalid email address", details={"email": email})

    user = await store.find_user_by_email(email)
    if user is None:
        raise NotFoundError("No user with that email was found")
    log.info("user_found", email=user.email)

    current = await store.find_balance_by_user_id(user.id)
    if current is None:
        log.info("user_has_no_balance", email=user.email)
    else:
        log.info("current_balance", email=user.email, token_credits=current.token_credits)

    result = await assign_balance(store, user, amount)
    log.info("balance_set", email=user.email, token_credits=result.token_credits)
    return result


async def set_balance_for_all(store: BalanceStore, amount: str) -> BulkResult:
    """Bulk path. Per-user failures are counted, never raised."""
    log.info("setting_balance_for_all_users", amount=amount)
    users = await store.list_all_users()
    summary = BulkResult()
    if not users:
        log.warning("no_users_found")
        return summary

    for user in users:
        who = display_name(user)
        try:
            result = await assign_balance(store, user, amount)
        except StoreWriteFailureError as e:
            log.error("balance_set_failed", user=who, error=e.message, cause=e.cause)
            summary.record_failure(who, e.message)
            continue
        log.info("balance_set", user=who, token_credits=result.token_credits)
        summary.record_success()

    log.info("bulk_update_complete", succeeded=summary.succeeded)
    if summary.failed:
        log.error("bulk_update_failures", failed=summary.failed)
    return summary


async def set_balance(store: BalanceStore, identifier: str, amount: str) -> Balance | BulkResult:
    """Dispatch on scope: `all`/`--all` (any case) targets every user, anything else is an email."""
    if not amount:
        raise InvalidInputError("Please specify an amount")
    if is_all_users(identifier):
        return await set_balance_for_all(store, amount)
    return await set_balance_for_user(store, identifier, amount)
