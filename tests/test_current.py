from __future__ import annotations

import json

import pytest

from deepsea.onchain.current import (
    AddressBook,
    DeploymentRecord,
    estimate_deploy_block,
    explorer_address_url,
    network_name,
)

from .conftest import ALICE


def test_deployment_record_round_trip(tmp_path):
    path = tmp_path / ".current.json"
    record = DeploymentRecord.create(ALICE, 80002, ALICE)
    record.save(path)

    data = json.loads(path.read_text())
    assert set(data) == {"contractAddress", "network", "chainId", "deployer", "deployedAt"}
    assert data["network"] == "Polygon Amoy"
    assert data["chainId"] == "80002"

    loaded = DeploymentRecord.load(path)
    assert loaded == record
    assert loaded.deployed_timestamp > 0


def test_missing_deployment_record(tmp_path):
    with pytest.raises(FileNotFoundError):
        DeploymentRecord.load(tmp_path / "nope.json")


def test_estimate_deploy_block():
    # one hour ago at 2 s blocks = 1800 blocks
    assert estimate_deploy_block(1_000_000, 10_000, now=1_003_600, block_time=2) == 8_200
    assert estimate_deploy_block(0, 100, now=1_000_000, block_time=2) == 0


def test_networks():
    assert network_name(137) == "Polygon Mainnet"
    assert network_name(1) == "Unknown"
    assert explorer_address_url(137, ALICE) == f"https://polygonscan.com/address/{ALICE}"
    assert explorer_address_url(31337, ALICE) is None


def test_address_book(tmp_path):
    path = tmp_path / ".wallets.json"
    book = AddressBook(path)
    assert book.names() == []
    book.add("alice", ALICE.lower())

    reloaded = AddressBook(path)
    assert reloaded.resolve("alice") == ALICE
    assert reloaded.resolve(ALICE.lower()) == ALICE
    with pytest.raises(ValueError):
        reloaded.resolve("carol")
    with pytest.raises(ValueError):
        book.add("bad", "0x123")
