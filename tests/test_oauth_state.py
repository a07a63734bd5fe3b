from __future__ import annotations

import re

import pytest

from app.core.errors import (
    AuthorizationFlowError,
    CorrelatorMismatchError,
    InvalidCorrelatorError,
    InvalidOrExpiredStateError,
)
from app.services.oauth_state import OAuthStateLedger


@pytest.mark.asyncio
async def test_issue_without_correlator_returns_fixed_length_hex(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store)

    state = await ledger.issue()

    assert re.fullmatch(r"[0-9a-f]{64}", state)
    assert await redis_store.ttl(f"oauth:state:{state}") == 600
    assert await ledger.consume(state) is None


@pytest.mark.asyncio
async def test_correlator_is_embedded_and_returned_on_consume(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store)

    state = await ledger.issue("sess-1")

    assert state.endswith(":sess-1")
    assert await ledger.consume(state) == "sess-1"


@pytest.mark.asyncio
async def test_correlator_may_contain_separator(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store)

    state = await ledger.issue("cli:host:42")

    assert await ledger.consume(state) == "cli:host:42"


@pytest.mark.asyncio
async def test_state_is_single_use(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store)
    state = await ledger.issue("sess-1")

    await ledger.consume(state)

    with pytest.raises(InvalidOrExpiredStateError):
        await ledger.consume(state)


@pytest.mark.asyncio
async def test_state_expires_after_window(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store, ttl_seconds=600)
    state = await ledger.issue()

    redis_store.advance(601)

    with pytest.raises(InvalidOrExpiredStateError):
        await ledger.consume(state)


@pytest.mark.asyncio
async def test_swapped_correlator_is_rejected(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store)
    state = await ledger.issue("sess-1")
    nonce = state[:64]

    with pytest.raises(CorrelatorMismatchError):
        await ledger.consume(f"{nonce}:sess-2")


@pytest.mark.asyncio
async def test_correlator_added_to_plain_state_is_rejected(redis_store) -> None:
    ledger = OAuthStateLedger(redis_store)
    state = await ledger.issue()

    with pytest.raises(CorrelatorMismatchError):
        await ledger.consume(f"{state}:injected")


@pytest.mark.asyncio
@pytest.mark.parametrize("state", ["", "abc", "g" * 64, "a" * 64 + "x", "A" * 64])
async def test_malformed_states_are_rejected(redis_store, state: str) -> None:
    ledger = OAuthStateLedger(redis_store)

    with pytest.raises(AuthorizationFlowError):
        await ledger.consume(state)


@pytest.mark.asyncio
@pytest.mark.parametrize("correlator", ["", "with space", "x" * 129, "tab\tchar"])
async def test_invalid_correlators_are_refused(redis_store, correlator: str) -> None:
    ledger = OAuthStateLedger(redis_store)

    with pytest.raises(InvalidCorrelatorError):
        await ledger.issue(correlator)
