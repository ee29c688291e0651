from __future__ import annotations

import pytest
import requests

from deepsea.apps.tokens.services import metadata
from deepsea.apps.tokens.services.metadata import describe_tokens

from .conftest import OWNER


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        if self.payload is None:
            raise ValueError("no JSON")
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def http(monkeypatch):
    """Route metadata GETs to a dict of uri -> FakeResponse (missing uri = connection error)."""
    routes = {}
    calls = []

    def fake_get(uri, timeout=None):
        calls.append(uri)
        if uri not in routes:
            raise requests.ConnectionError(f"cannot reach {uri}")
        return routes[uri]

    monkeypatch.setattr(metadata.requests, "get", fake_get)
    return routes, calls


def test_lists_active_tokens_and_checks_uris(ledger, http):
    routes, _ = http
    routes[ledger.uri(1)] = FakeResponse(200, {"name": "GOLD"})
    routes[ledger.uri(2)] = FakeResponse(404)

    result = describe_tokens(ledger)

    assert result.success
    assert [t.id for t in result.tokens] == [1, 2, 3]
    gold, silver, bronze = result.tokens
    assert (gold.accessible, gold.status_code, gold.metadata) == (True, 200, {"name": "GOLD"})
    assert (silver.accessible, silver.status_code, silver.metadata) == (False, 404, None)
    assert (bronze.accessible, bronze.status_code) == (False, None)
    assert (result.accessible_tokens, result.inaccessible_tokens) == (1, 2)


def test_probe_and_fetch_are_separate_steps(ledger, http):
    routes, calls = http
    routes[ledger.uri(1)] = FakeResponse(200, {"name": "GOLD"})

    result = describe_tokens(ledger, token_id=1, fetch=False)
    assert result.tokens[0].accessible and result.tokens[0].metadata is None
    assert calls == [ledger.uri(1)]

    calls.clear()
    result = describe_tokens(ledger, token_id=1, check_accessibility=False)
    assert result.tokens[0].status_code is None
    assert calls == []


def test_accessible_uri_with_invalid_json(ledger, http):
    routes, _ = http
    routes[ledger.uri(3)] = FakeResponse(200)
    token = describe_tokens(ledger, token_id=3).tokens[0]
    assert token.accessible and token.metadata is None


def test_inactive_or_missing_tokens(ledger, db):
    assert describe_tokens(ledger, token_id=7).error == "Token ID 7 is not active"

    from deepsea.apps.tokens.ledger import TokenLedger

    empty = TokenLedger.deploy(owner=OWNER, seed=False)
    result = describe_tokens(empty, check_accessibility=False)
    assert not result.success
    assert result.error == "No active tokens found in contract"


def test_listing_stops_at_first_gap(ledger, http):
    ledger.create_token(OWNER, 5, "PEARL", "", 10)
    result = describe_tokens(ledger, check_accessibility=False)
    assert [t.id for t in result.tokens] == [1, 2, 3]


class FakeContractService:
    def __init__(self, tokens):
        self.tokens = tokens

    def get_token_info(self, token_id):
        if token_id not in self.tokens:
            raise ValueError("execution reverted")
        name, active = self.tokens[token_id]
        return {
            "token_id": token_id,
            "name": name,
            "description": "",
            "max_supply": 10,
            "current_supply": 0,
            "is_active": active,
        }

    def get_uri(self, token_id):
        return f"https://meta.example/{token_id}"


def test_contract_source(http):
    service = FakeContractService({1: ("GOLD", True), 2: ("SILVER", True), 3: ("OLD", False)})
    result = describe_tokens(service, check_accessibility=False)
    assert [(t.id, t.uri) for t in result.tokens] == [
        (1, "https://meta.example/1"),
        (2, "https://meta.example/2"),
    ]
    assert describe_tokens(service, token_id=9).error == "Token ID 9 is not active"
