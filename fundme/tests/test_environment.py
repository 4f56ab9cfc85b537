"""Tests for the execution environment's transactional account storage."""

import pytest

from fundme.db.models import ACCOUNT_KIND_PROJECT, ACCOUNT_KIND_WALLET, MAX_AMOUNT, Account, Project
from fundme.db.session import get_session
from fundme.errors import (
    AccountKindMismatch,
    AccountNotFound,
    AddressAlreadyInUse,
    AmountOverflow,
    InsufficientFunds,
    InvalidAmount,
    InvalidIdentity,
    SelfTransfer,
)

from conftest import ALICE, BOB, CAROL, NOW, OWNER

PROJECT = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"


def test_fund_account_creates_wallet(env):
    assert env.get_balance(ALICE) == 0

    assert env.fund_account(ALICE, 1_000) == 1_000
    assert env.fund_account(ALICE, 500) == 1_500

    with get_session() as session:
        account = session.get(Account, ALICE)
        assert account.kind == ACCOUNT_KIND_WALLET
        assert account.balance == 1_500


def test_fund_account_overflow(env):
    env.fund_account(ALICE, MAX_AMOUNT)

    with pytest.raises(AmountOverflow):
        env.fund_account(ALICE, 1)
    assert env.get_balance(ALICE) == MAX_AMOUNT


def test_create_account_is_create_only(env):
    with env.transaction() as tx:
        tx.create_account(PROJECT, ACCOUNT_KIND_PROJECT)

    with pytest.raises(AddressAlreadyInUse):
        with env.transaction() as tx:
            tx.create_account(PROJECT, ACCOUNT_KIND_WALLET)

    with get_session() as session:
        assert session.get(Account, PROJECT).kind == ACCOUNT_KIND_PROJECT


def test_transfer_moves_value(env):
    env.fund_account(ALICE, 1_000)
    env.fund_account(BOB, 0)

    with env.transaction() as tx:
        tx.transfer(ALICE, BOB, 400)

    assert env.get_balance(ALICE) == 600
    assert env.get_balance(BOB) == 400


def test_transfer_insufficient_funds(env):
    env.fund_account(ALICE, 100)
    env.fund_account(BOB, 0)

    with pytest.raises(InsufficientFunds) as exc_info:
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, 101)

    assert exc_info.value.balance == 100
    assert exc_info.value.required == 101
    assert env.get_balance(ALICE) == 100
    assert env.get_balance(BOB) == 0


def test_transfer_from_unknown_account_is_insufficient_funds(env):
    env.fund_account(BOB, 0)

    with pytest.raises(InsufficientFunds):
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, 1)


def test_transfer_to_unknown_account(env):
    env.fund_account(ALICE, 100)

    with pytest.raises(AccountNotFound):
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, 1)
    assert env.get_balance(ALICE) == 100


def test_transfer_rejects_negative_amount(env):
    with pytest.raises(InvalidAmount):
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, -1)


def test_failed_transaction_discards_all_writes(env):
    env.fund_account(ALICE, 1_000)
    env.fund_account(BOB, 0)

    with pytest.raises(RuntimeError):
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, 300)
            tx.create_account(PROJECT, ACCOUNT_KIND_PROJECT)
            raise RuntimeError("abort")

    assert env.get_balance(ALICE) == 1_000
    assert env.get_balance(BOB) == 0
    with get_session() as session:
        assert session.get(Account, PROJECT) is None


def test_current_time_is_stable_within_transaction(env, clock):
    with env.transaction() as tx:
        first = tx.current_time()
        clock.advance(60)
        assert tx.current_time() == first == NOW

    with env.transaction() as tx:
        assert tx.current_time() == NOW + 60


def test_transfer_to_self_rejected(env):
    env.fund_account(ALICE, 500)

    with pytest.raises(SelfTransfer):
        with env.transaction() as tx:
            tx.transfer(ALICE, ALICE.upper().replace("0X", "0x"), 100)
    assert env.get_balance(ALICE) == 500


def test_fund_account_rejects_derived_address_space(env):
    with pytest.raises(InvalidIdentity):
        env.fund_account(PROJECT, 1)

    with get_session() as session:
        assert session.get(Account, PROJECT) is None


def test_fund_account_only_credits_wallets(env):
    with env.transaction() as tx:
        tx.create_account(CAROL, ACCOUNT_KIND_PROJECT)

    with pytest.raises(AccountKindMismatch):
        env.fund_account(CAROL, 77)
    assert env.get_balance(CAROL) == 0


def test_create_account_race_becomes_address_in_use(env, monkeypatch):
    """A row committed between the existence check and the insert loses nothing."""
    env.fund_account(ALICE, 1_000)
    env.fund_account(BOB, 0)
    env.fund_account(CAROL, 5)

    with pytest.raises(AddressAlreadyInUse) as exc_info:
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, 300)
            # The competing row is invisible to the existence check
            monkeypatch.setattr(tx.session, "get", lambda *args, **kwargs: None)
            tx.create_account(CAROL, ACCOUNT_KIND_WALLET)

    assert exc_info.value.address == CAROL
    assert env.get_balance(ALICE) == 1_000
    assert env.get_balance(BOB) == 0
    assert env.get_balance(CAROL) == 5


def test_add_conflicting_record_becomes_address_in_use(env, registry, metadata):
    address = registry.create_project(OWNER, "taken", metadata, 1_000, NOW + 3600)
    env.fund_account(ALICE, 1_000)
    env.fund_account(BOB, 0)

    with pytest.raises(AddressAlreadyInUse) as exc_info:
        with env.transaction() as tx:
            tx.transfer(ALICE, BOB, 300)
            tx.add(
                Project(
                    address=address,
                    owner=OWNER,
                    project_id="taken",
                    title="Duplicate",
                    description="",
                    image_url="",
                    target_amount=1,
                    current_amount=0,
                    end_time=NOW,
                    bump=0,
                )
            )

    assert exc_info.value.address == address
    assert env.get_balance(ALICE) == 1_000
    assert env.get_balance(BOB) == 0
    with get_session() as session:
        assert session.get(Project, address).title == metadata.title
