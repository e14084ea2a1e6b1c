import asyncio

import pytest
from pymongo.errors import AutoReconnect

from creditadmin.commands.set_balance import run_guarded
from creditadmin.core.exceptions import (
    ConfigurationDisabledError,
    InvalidInputError,
    NotFoundError,
    StoreWriteFailureError,
    is_transient_network_error,
)

pytestmark = pytest.mark.asyncio


async def _returns(code):
    return code


async def _raises(exc):
    raise exc


@pytest.mark.parametrize(
    "exc",
    [
        ConfigurationDisabledError(),
        InvalidInputError("Invalid email address"),
        NotFoundError("No user with that email was found"),
        StoreWriteFailureError("boom"),
        RuntimeError("unexpected"),
    ],
)
async def test_fatal_errors_map_to_exit_1(exc):
    assert await run_guarded(_raises(exc)) == 1


async def test_command_exit_code_is_passed_through():
    assert await run_guarded(_returns(0)) == 0


async def test_transient_background_error_is_ignored():
    async def command():
        loop = asyncio.get_running_loop()
        loop.call_exception_handler({"message": "Task exception was never retrieved", "exception": OSError("fetch failed")})
        return 0

    assert await run_guarded(command()) == 0


async def test_other_background_error_forces_exit_1():
    async def command():
        loop = asyncio.get_running_loop()
        loop.call_exception_handler({"message": "Task exception was never retrieved", "exception": ValueError("bad state")})
        return 0

    assert await run_guarded(command()) == 1


async def test_transient_classification():
    assert is_transient_network_error(OSError("TypeError: fetch failed"))
    assert is_transient_network_error(AutoReconnect("connection reset"))
    assert not is_transient_network_error(ValueError("fetch succeeded"))
    assert not is_transient_network_error(None)
