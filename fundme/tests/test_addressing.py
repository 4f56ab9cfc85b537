"""Tests for deterministic address derivation."""

import pytest

from fundme.errors import (
    AddressMismatch,
    AddressSpaceExhausted,
    InvalidIdentity,
    InvalidSeeds,
    SeedTooLong,
    TooManySeeds,
)
from fundme.runtime import addressing
from fundme.runtime.addressing import (
    check_wallet_identity,
    create_address,
    derive_project_address,
    derive_receipt_address,
    encode_seed_int,
    find_address,
    project_seeds,
    verify_address,
)

PROGRAM_ID = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
OWNER = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
DONOR = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"


def test_project_address_is_deterministic():
    """Same owner and project id always derive the same address and bump."""
    first = derive_project_address(OWNER, "my-project", PROGRAM_ID)
    second = derive_project_address(OWNER, "my-project", PROGRAM_ID)

    assert first == second
    address, bump = first
    assert address.startswith("0x") and len(address) == 42
    assert 0 <= bump <= 255


def test_checksummed_owner_derives_same_address():
    upper = "0x" + OWNER[2:].upper()
    assert derive_project_address(upper, "p", PROGRAM_ID) == derive_project_address(OWNER, "p", PROGRAM_ID)


def test_different_seeds_give_different_addresses():
    a, _ = derive_project_address(OWNER, "project-a", PROGRAM_ID)
    b, _ = derive_project_address(OWNER, "project-b", PROGRAM_ID)
    c, _ = derive_project_address(DONOR, "project-a", PROGRAM_ID)
    other_program, _ = derive_project_address(OWNER, "project-a", "0x" + "11" * 20)

    assert len({a, b, c, other_program}) == 4


def test_found_address_is_outside_reserved_space():
    seeds = project_seeds(OWNER, "my-project")
    address, bump = find_address(seeds, PROGRAM_ID)

    assert int(address[-2:], 16) & 0x80 == 0
    assert create_address(seeds, bump, PROGRAM_ID) == address


def test_bump_search_takes_highest_valid_bump():
    seeds = project_seeds(OWNER, "bump-search")
    _, bump = find_address(seeds, PROGRAM_ID)

    for higher in range(bump + 1, 256):
        with pytest.raises(InvalidSeeds):
            create_address(seeds, higher, PROGRAM_ID)


def test_address_space_exhausted(monkeypatch):
    monkeypatch.setattr(addressing, "_is_reserved", lambda candidate: True)

    with pytest.raises(AddressSpaceExhausted):
        find_address([b"project"], PROGRAM_ID)


def test_project_id_longer_than_seed_limit():
    with pytest.raises(SeedTooLong):
        derive_project_address(OWNER, "x" * 33, PROGRAM_ID)


def test_too_many_seeds():
    with pytest.raises(TooManySeeds):
        find_address([b"s"] * 16, PROGRAM_ID)


def test_receipt_address_depends_on_acceptance_seed():
    project, _ = derive_project_address(OWNER, "my-project", PROGRAM_ID)

    first, _ = derive_receipt_address(DONOR, project, 1735603200000, PROGRAM_ID)
    again, _ = derive_receipt_address(DONOR, project, 1735603200000, PROGRAM_ID)
    later, _ = derive_receipt_address(DONOR, project, 1735603200100, PROGRAM_ID)

    assert first == again
    assert first != later


def test_encode_seed_int_little_endian_signed():
    assert encode_seed_int(1) == b"\x01" + b"\x00" * 7
    assert encode_seed_int(-1) == b"\xff" * 8

    with pytest.raises(InvalidSeeds):
        encode_seed_int(2**63)
    with pytest.raises(InvalidSeeds):
        encode_seed_int(True)


def test_verify_address_detects_wrong_bump():
    seeds = project_seeds(OWNER, "my-project")
    address, bump = find_address(seeds, PROGRAM_ID)

    verify_address(address, seeds, bump, PROGRAM_ID)
    with pytest.raises((AddressMismatch, InvalidSeeds)):
        verify_address(address, seeds, (bump - 1) % 256, PROGRAM_ID)


def test_invalid_identity_rejected():
    with pytest.raises(InvalidIdentity):
        derive_project_address("not-an-address", "p", PROGRAM_ID)


def test_wallet_identities_and_derived_addresses_are_disjoint():
    assert check_wallet_identity(OWNER.upper().replace("0X", "0x")) == OWNER

    derived, _ = derive_project_address(OWNER, "my-project", PROGRAM_ID)
    with pytest.raises(InvalidIdentity):
        check_wallet_identity(derived)
