from __future__ import annotations

import pytest

from deepsea.apps.tokens.ledger import TokenLedger
from deepsea.apps.treasury.stablecoin import StableCoinBook
from deepsea.apps.treasury.treasury import Treasury

# Hardhat default accounts
OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ALICE = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BOB = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
MALLORY = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"

USDC = "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"


class FakeRedis:
    """Just enough of redis.Redis for the status store."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def get(self, key):
        return self.data.get(key)

    def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)
            self.ttls.pop(key, None)


@pytest.fixture
def ledger(db):
    return TokenLedger.deploy(owner=OWNER)


@pytest.fixture
def usdc(ledger):
    Treasury(ledger).set_usdc_address(OWNER, USDC)
    return StableCoinBook(USDC)


@pytest.fixture
def treasury(ledger, usdc):
    return Treasury(ledger)


@pytest.fixture
def fund(ledger, usdc, treasury):
    """Put ``amount`` USDC units into the treasury via the owner's wallet."""

    def _fund(amount: int) -> int:
        usdc.mint(OWNER, amount)
        usdc.approve(OWNER, ledger.get_collection().address, amount)
        return treasury.add_funds(OWNER, amount)

    return _fund


@pytest.fixture
def fake_redis():
    return FakeRedis()
