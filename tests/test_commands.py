from __future__ import annotations

import json
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from deepsea.apps.tokens.ledger import TokenLedger
from deepsea.apps.tokens.models import Collection
from deepsea.apps.treasury.stablecoin import StableCoinBook
from deepsea.onchain.current import AddressBook, DeploymentRecord

from .conftest import ALICE, OWNER, USDC

USD = 1_000000


@pytest.fixture
def workspace(tmp_path, settings):
    settings.CURRENT_CONTRACT_FILE = tmp_path / ".current.json"
    settings.WALLETS_FILE = tmp_path / ".wallets.json"
    settings.COLLECTION_ADDRESS = ""
    AddressBook(settings.WALLETS_FILE).add("alice", ALICE)
    return tmp_path


def run(*args):
    out = StringIO()
    call_command(*args, stdout=out)
    return out.getvalue()


@pytest.fixture
def deployed(db, workspace):
    output = run("deploy_collection", "--local")
    assert "Collection deployed to" in output
    record = DeploymentRecord.load()
    return TokenLedger(Collection.objects.get(address=record.contract_address))


def test_deploy_writes_record(deployed):
    record = DeploymentRecord.load()
    assert record.deployer == OWNER
    assert record.network == "Hardhat"
    assert [t.name for t in deployed.active_tokens()] == ["GOLD", "SILVER", "BRONZE"]


def test_mint_to_saved_wallet(deployed):
    output = run("mint_to_wallet", "alice", "1", "5", "--local", "--yes")
    assert "Minted 5 of token 1" in output
    assert deployed.balance_of(ALICE, 1) == 5

    with pytest.raises(CommandError):
        run("mint_to_wallet", "alice", "3", "21", "--local", "--yes")
    with pytest.raises(CommandError):
        run("mint_to_wallet", "carol", "1", "1", "--local", "--yes")


def test_declined_confirmation_is_not_an_error(deployed, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    output = run("mint_to_wallet", "alice", "1", "5", "--local")
    assert "cancelled" in output
    assert deployed.balance_of(ALICE, 1) == 0


def test_update_token_metadata(deployed):
    run(
        "update_token_metadata",
        "--token-id", "2",
        "--name", "STERLING",
        "--base-uri", "https://meta.example/{id}.json",
        "--local",
        "--yes",
    )
    assert deployed.get_token_info(2).name == "STERLING"
    assert deployed.get_token_info(2).description == "Silver recovered from sunken wrecks"
    assert deployed.uri(2).startswith("https://meta.example/")


def test_get_token_metadata_json(deployed):
    output = run("get_token_metadata", "--local", "--no-check", "--json")
    data = json.loads(output)
    assert data["success"] and data["total_tokens"] == 3


def test_get_events(deployed):
    run("mint_to_wallet", "alice", "1", "5", "--local", "--yes")
    output = run("get_events", "--local", "--from-block", "0", "--json")
    data = json.loads(output)
    assert data["complete"]
    assert data["summary"]["total_events"] == 1
    assert data["events"][0]["to_address"] == ALICE


def test_treasury_commands(deployed):
    run("set_usdc_address", USDC, "--local", "--yes")
    StableCoinBook(USDC).mint(OWNER, 200 * USD)

    assert "Treasury USDC balance: 100" in run("add_usdc", "100", "--local", "--yes")
    run("mint_to_wallet", "alice", "3", "10", "--local", "--yes")

    run("payback", "alice", "3", "4", "50", "--local", "--yes")
    assert deployed.balance_of(ALICE, 3) == 6
    assert StableCoinBook(USDC).balance_of(ALICE) == 50 * USD

    with pytest.raises(CommandError):
        run("payback", "alice", "3", "4", "60", "--local", "--yes")

    run("pay_dividend", "alice", "10", "--local", "--yes")
    run("withdraw_usdc", "20", "--local", "--yes")
    assert "Treasury USDC balance: 20" in run("get_usdc_balance", "--local")

    with pytest.raises(CommandError):
        run("withdraw_usdc", "0", "--local", "--yes")
