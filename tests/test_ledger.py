from __future__ import annotations

import pytest

from deepsea.apps.tokens.addresses import ZERO_ADDRESS
from deepsea.apps.tokens.errors import (
    AlreadyExists,
    InsufficientBalance,
    InvalidArgument,
    LengthMismatch,
    NotFound,
    SupplyExceeded,
    Unauthorized,
)
from deepsea.apps.tokens.models import LedgerEvent, TokenRecord

from .conftest import ALICE, BOB, MALLORY, OWNER


def assert_supply_invariants(ledger):
    for record in TokenRecord.objects.filter(collection_id=ledger.collection_id):
        assert 0 <= record.current_supply <= record.max_supply
        assert ledger.total_held(record.token_id) == record.current_supply


def test_deploy_seeds_three_tokens(ledger):
    collection = ledger.get_collection()
    assert collection.name == "Secret of the Deep"
    assert collection.symbol == "SOTD"
    assert collection.owner == OWNER
    tokens = [(t.token_id, t.name, t.max_supply) for t in ledger.active_tokens()]
    assert tokens == [(1, "GOLD", 50), (2, "SILVER", 40), (3, "BRONZE", 20)]
    assert LedgerEvent.objects.filter(collection=collection, name="TokenCreated").count() == 3


def test_create_token_owner_only(ledger):
    with pytest.raises(Unauthorized):
        ledger.create_token(ALICE, 4, "PEARL", "", 10)
    assert ledger.get_token_info(4) is None

    record = ledger.create_token(OWNER, 4, "PEARL", "From oysters", 10)
    assert record.current_supply == 0
    assert record.is_active


def test_duplicate_create_leaves_record_unchanged(ledger):
    ledger.mint(OWNER, ALICE, 1, 5)
    with pytest.raises(AlreadyExists):
        ledger.create_token(OWNER, 1, "FAKE GOLD", "", 999)
    record = ledger.get_token_info(1)
    assert (record.name, record.max_supply, record.current_supply) == ("GOLD", 50, 5)


def test_create_with_zero_max_supply(ledger):
    with pytest.raises(InvalidArgument):
        ledger.create_token(OWNER, 7, "VOID", "", 0)


def test_mint_credits_and_respects_max_supply(ledger):
    ledger.mint(OWNER, ALICE, 3, 15)
    assert ledger.balance_of(ALICE, 3) == 15

    with pytest.raises(SupplyExceeded):
        ledger.mint(OWNER, BOB, 3, 6)
    assert ledger.balance_of(BOB, 3) == 0

    ledger.mint(OWNER, BOB, 3, 5)
    assert ledger.get_token_info(3).current_supply == 20
    assert_supply_invariants(ledger)


def test_mint_failures(ledger):
    with pytest.raises(Unauthorized):
        ledger.mint(ALICE, ALICE, 1, 1)
    with pytest.raises(NotFound):
        ledger.mint(OWNER, ALICE, 99, 1)
    with pytest.raises(InvalidArgument):
        ledger.mint(OWNER, ALICE, 1, 0)
    with pytest.raises(InvalidArgument):
        ledger.mint(OWNER, ZERO_ADDRESS, 1, 1)
    assert ledger.get_token_info(1).current_supply == 0


def test_mint_then_burn_round_trip(ledger):
    ledger.mint(OWNER, ALICE, 2, 3)
    supply, balance = ledger.get_token_info(2).current_supply, ledger.balance_of(ALICE, 2)

    ledger.mint(OWNER, ALICE, 2, 7)
    ledger.burn(ALICE, ALICE, 2, 7)

    assert ledger.get_token_info(2).current_supply == supply
    assert ledger.balance_of(ALICE, 2) == balance
    assert_supply_invariants(ledger)


def test_burn_authorization_and_balance(ledger):
    ledger.mint(OWNER, ALICE, 1, 4)
    with pytest.raises(Unauthorized):
        ledger.burn(MALLORY, ALICE, 1, 1)
    with pytest.raises(InsufficientBalance):
        ledger.burn(ALICE, ALICE, 1, 5)

    # the owner may burn on a holder's behalf
    ledger.burn(OWNER, ALICE, 1, 4)
    assert ledger.balance_of(ALICE, 1) == 0
    assert ledger.get_token_info(1).current_supply == 0


def test_mint_batch_length_mismatch_mutates_nothing(ledger):
    with pytest.raises(LengthMismatch):
        ledger.mint_batch(OWNER, ALICE, [1, 2], [1])
    assert ledger.balance_of_batch([ALICE, ALICE], [1, 2]) == [0, 0]
    assert_supply_invariants(ledger)


def test_mint_batch_is_all_or_nothing(ledger):
    # token 3 caps at 20; the last pair breaks the batch
    with pytest.raises(SupplyExceeded):
        ledger.mint_batch(OWNER, ALICE, [1, 2, 3], [5, 5, 21])
    assert ledger.balance_of_batch([ALICE] * 3, [1, 2, 3]) == [0, 0, 0]

    # duplicate ids count against the same supply
    with pytest.raises(SupplyExceeded):
        ledger.mint_batch(OWNER, ALICE, [3, 3], [15, 6])
    assert ledger.get_token_info(3).current_supply == 0

    ledger.mint_batch(OWNER, ALICE, [1, 2, 1], [5, 4, 1])
    assert ledger.balance_of_batch([ALICE, ALICE], [1, 2]) == [6, 4]
    assert_supply_invariants(ledger)


def test_mint_batch_emits_transfer_batch(ledger):
    ledger.mint_batch(OWNER, BOB, [1, 2], [1, 2])
    event = LedgerEvent.objects.filter(collection_id=ledger.collection_id, name="TransferBatch").get()
    assert event.args["from"] == ZERO_ADDRESS
    assert event.args["to"] == BOB
    assert event.args["ids"] == [1, 2]
    assert event.args["values"] == [1, 2]


def test_update_token_info_keeps_supply(ledger):
    ledger.mint(OWNER, ALICE, 1, 10)
    record = ledger.update_token_info(OWNER, 1, "ROYAL GOLD", "Polished")
    assert (record.name, record.description) == ("ROYAL GOLD", "Polished")
    assert (record.max_supply, record.current_supply) == (50, 10)

    with pytest.raises(NotFound):
        ledger.update_token_info(OWNER, 42, "x", "y")
    with pytest.raises(Unauthorized):
        ledger.update_token_info(ALICE, 1, "MINE", "")


def test_get_token_info_is_read_only(ledger):
    height = ledger.get_collection().height
    assert ledger.get_token_info(1).name == "GOLD"
    assert ledger.get_token_info(1000) is None
    assert ledger.get_collection().height == height


def test_uri_for_active_tokens_only(ledger):
    assert ledger.uri(1).endswith("0" * 63 + "1")
    with pytest.raises(NotFound):
        ledger.uri(9)

    ledger.set_base_uri(OWNER, "https://meta.example/{id}.json")
    assert ledger.uri(2) == "https://meta.example/" + "0" * 63 + "2.json"
    with pytest.raises(InvalidArgument):
        ledger.set_base_uri(OWNER, "")


def test_transfers_and_operator_approvals(ledger):
    ledger.mint_batch(OWNER, ALICE, [1, 2], [10, 10])

    ledger.safe_transfer_from(ALICE, ALICE, BOB, 1, 3)
    assert ledger.balance_of_batch([ALICE, BOB], [1, 1]) == [7, 3]

    with pytest.raises(Unauthorized):
        ledger.safe_transfer_from(MALLORY, ALICE, MALLORY, 1, 1)

    ledger.set_approval_for_all(ALICE, MALLORY, True)
    assert ledger.is_approved_for_all(ALICE, MALLORY)
    ledger.safe_batch_transfer_from(MALLORY, ALICE, BOB, [1, 2], [2, 5])
    assert ledger.balance_of_batch([ALICE, ALICE, BOB, BOB], [1, 2, 1, 2]) == [5, 5, 5, 5]

    with pytest.raises(InsufficientBalance):
        ledger.safe_batch_transfer_from(ALICE, ALICE, BOB, [2, 2], [3, 3])
    assert ledger.balance_of(ALICE, 2) == 5

    with pytest.raises(InvalidArgument):
        ledger.safe_transfer_from(ALICE, ALICE, ZERO_ADDRESS, 1, 1)
    assert_supply_invariants(ledger)


def test_collection_metadata_and_ownership(ledger):
    ledger.set_name(OWNER, "Deep Secrets")
    ledger.set_symbol(OWNER, "DEEP")
    ledger.set_contract_uri(OWNER, "https://meta.example/collection.json")
    collection = ledger.get_collection()
    assert (collection.name, collection.symbol) == ("Deep Secrets", "DEEP")
    assert collection.contract_uri == "https://meta.example/collection.json"

    with pytest.raises(Unauthorized):
        ledger.set_name(ALICE, "Hijacked")
    with pytest.raises(InvalidArgument):
        ledger.transfer_ownership(OWNER, ZERO_ADDRESS)

    ledger.transfer_ownership(OWNER, ALICE)
    assert ledger.owner() == ALICE
    with pytest.raises(Unauthorized):
        ledger.mint(OWNER, BOB, 1, 1)
    ledger.mint(ALICE, BOB, 1, 1)


def test_each_call_is_one_block(ledger):
    start = ledger.get_collection().height
    ledger.mint(OWNER, ALICE, 1, 1)
    events = list(LedgerEvent.objects.filter(collection_id=ledger.collection_id, block_number=start + 1))
    assert [e.name for e in events] == ["TransferSingle", "TokenMinted"]
    assert [e.log_index for e in events] == [0, 1]
    assert len({e.transaction_hash for e in events}) == 1

    # a failed call leaves no block behind
    with pytest.raises(SupplyExceeded):
        ledger.mint(OWNER, ALICE, 1, 100)
    assert ledger.get_collection().height == start + 1


def test_token_events_record_the_token_name(ledger):
    ledger.create_token(OWNER, 4, "PEARL", "From oysters", 10)
    ledger.update_token_info(OWNER, 4, "BLACK PEARL", "Rare")

    created = LedgerEvent.objects.filter(name="TokenCreated").order_by("pk").last()
    assert created.args == {"tokenId": 4, "name": "PEARL", "maxSupply": 10}
    updated = LedgerEvent.objects.get(name="TokenInfoUpdated")
    assert updated.args["name"] == "BLACK PEARL"


@pytest.mark.parametrize(
    "operation",
    [
        lambda ledger: ledger.mint(MALLORY, ZERO_ADDRESS, 1, 1),
        lambda ledger: ledger.mint(MALLORY, ALICE, 1, 0),
        lambda ledger: ledger.mint_batch(MALLORY, ZERO_ADDRESS, [1], [1]),
        lambda ledger: ledger.mint_batch(MALLORY, ALICE, [1, 2], [1]),
        lambda ledger: ledger.set_base_uri(MALLORY, ""),
        lambda ledger: ledger.transfer_ownership(MALLORY, ZERO_ADDRESS),
        lambda ledger: ledger.create_token(MALLORY, 1, "GOLD", "", 0),
    ],
)
def test_non_owner_is_unauthorized_before_argument_checks(ledger, operation):
    with pytest.raises(Unauthorized):
        operation(ledger)
