import asyncio

import pytest

from blob_guardian.exceptions import Cancelled
from blob_guardian.transport import CancellationToken


def test_token_starts_clear() -> None:
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()


def test_first_reason_wins() -> None:
    token = CancellationToken()
    token.cancel("first")
    token.cancel("second")
    assert token.cancelled
    assert token.reason == "first"
    with pytest.raises(Cancelled, match="first"):
        token.raise_if_cancelled(operation="upload")


@pytest.mark.asyncio
async def test_wait_returns_after_cancel() -> None:
    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.01, token.cancel)
    await asyncio.wait_for(token.wait(), timeout=1)
    assert token.cancelled
