"""
Set the token credit balance of one user account, or of every account.

Usage:
    set-balance <email|all> <amount>
    set-balance --all <amount>
    python -m creditadmin.commands.set_balance user@example.com 1000

Missing arguments are prompted for.
"""

import argparse
import asyncio
import sys
import threading
import uuid
from typing import Awaitable, Callable

from creditadmin.core.config import Settings, get_balance_config, get_settings
from creditadmin.core.exceptions import (
    AppError,
    ConfigurationDisabledError,
    InvalidInputError,
    TRANSIENT_NETWORK_MARKERS,
    is_transient_network_error,
)
from creditadmin.core.logging import bind_run_id, configure_logging, get_logger
from creditadmin.db.init import init_db
from creditadmin.services.balances import is_all_users, set_balance
from creditadmin.services.store import BalanceStore, MongoBalanceStore

log = get_logger(__name__)

Prompt = Callable[[str], Awaitable[str]]


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit like every other invalid input."""

    def error(self, message: str):
        raise InvalidInputError(f"{self.prog}: {message}")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="set-balance",
        description="Set balance to a user account.",
        epilog='Use "all" (or "--all") as the email to set the balance for all users. '
        "If you do not pass in the arguments, you will be prompted for them.",
    )
    parser.add_argument("target", nargs="?", help='user email, or "all" / "--all" for every user')
    parser.add_argument("amount", nargs="?", help="new token credit balance")
    return parser


def parse_args(argv: list[str] | None = None) -> tuple[str, str]:
    """Return (target, amount); either may be empty.

    `--all` is not an option but a spelling of the target, so it is only
    accepted in the target position and matched case-insensitively.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    markers = [i for i, arg in enumerate(argv) if arg.startswith("-") and is_all_users(arg)]
    if markers and markers != [0]:
        raise InvalidInputError('"--all" replaces the email and must come first', details={"argv": argv})
    if markers:
        # keep argparse from reading `--all` as an option
        argv = ["--", *argv]
    args = build_parser().parse_args(argv)
    return args.target or "", args.amount or ""


async def ask_question(prompt: str) -> str:
    """Read one line from stdin without blocking the event loop.

    The read runs on a daemon thread so an interrupted prompt does not keep
    the process alive waiting for input.
    """
    loop = asyncio.get_running_loop()
    answer = loop.create_future()

    def resolve(value: str) -> None:
        if not answer.done():
            answer.set_result(value)

    def read() -> None:
        try:
            value = input(f"{prompt} ")
        except EOFError:
            value = ""
        if not loop.is_closed():
            loop.call_soon_threadsafe(resolve, value)

    threading.Thread(target=read, name="set-balance-prompt", daemon=True).start()
    return (await answer).strip()


async def set_balance_command(
    target: str,
    amount: str,
    settings: Settings,
    store: BalanceStore | None = None,
    prompt: Prompt = ask_question,
) -> int:
    """Run one assignment. Returns the exit code; fatal conditions raise AppError."""
    log.info("set_balance_to_user_account")
    if not target or not amount:
        print(build_parser().format_usage().rstrip())
        print('Note: use "all" as the email to set the balance for all users.')
        print("Note: if you do not pass in the arguments, you will be prompted for them.")

    balance_config = get_balance_config(settings)
    if not balance_config.enabled:
        raise ConfigurationDisabledError()

    if not target:
        target = await prompt('Email (or "all" for all users):')
    if not amount:
        amount = await prompt("Amount:")
    if not amount:
        raise InvalidInputError("Please specify an amount")

    client = None
    if store is None:
        client = await init_db(settings)
        store = MongoBalanceStore(balance_config)
    try:
        # bulk runs exit 0 even when some users failed; failures are only reported
        await set_balance(store, target, amount)
    finally:
        if client is not None:
            client.close()
    return 0


async def run_guarded(command: Awaitable[int]) -> int:
    """Top-level error boundary: map escaping errors and background task errors to an exit code."""
    background_failures: list[str] = []

    def handle_background_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        message = context.get("message", "")
        if is_transient_network_error(exc) or any(m in message for m in TRANSIENT_NETWORK_MARKERS):
            log.debug("transient_network_error_ignored", message=message, error=str(exc))
            return
        log.error("uncaught_background_error", message=message, error=repr(exc))
        background_failures.append(message)

    asyncio.get_running_loop().set_exception_handler(handle_background_error)
    bind_run_id(uuid.uuid4().hex[:12])

    try:
        code = await command
    except AppError as e:
        log.error(e.code.lower(), message=e.message, **e.details)
        code = e.exit_code
    except Exception as e:
        log.exception("unhandled_exception", error=str(e), transient=is_transient_network_error(e))
        code = 1

    if background_failures:
        return 1
    return code


def run(
    argv: list[str] | None = None,
    settings: Settings | None = None,
    store: BalanceStore | None = None,
    prompt: Prompt = ask_question,
) -> int:
    try:
        target, amount = parse_args(argv)
    except InvalidInputError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return e.exit_code
    try:
        settings = settings or get_settings()
    except Exception as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        return 1
    configure_logging(debug=settings.debug, json_logs=settings.log_json)

    try:
        return asyncio.run(run_guarded(set_balance_command(target, amount, settings, store=store, prompt=prompt)))
    except KeyboardInterrupt:
        print("\nAborted.")
        return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
