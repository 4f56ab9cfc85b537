"""Deterministic address derivation for ledger entities.

An entity's address is the keccak-256 digest of its seeds, a one-byte bump,
the program id and a domain marker, truncated to 20 bytes. Candidates whose
final byte has its high bit set are reserved for key-pair identities, and
``check_wallet_identity`` refuses identities outside that half, so a derived
address can never collide with a wallet. ``find_address`` searches
bumps from 255 downwards and returns the first unreserved candidate; the bump
is stored with the entity so lookups can re-derive the same address.
"""

from typing import List, Sequence, Tuple

from web3 import Web3

from fundme.errors import (
    AddressMismatch,
    AddressSpaceExhausted,
    InvalidIdentity,
    InvalidSeeds,
    SeedTooLong,
    TooManySeeds,
)

MAX_SEEDS = 16
MAX_SEED_LEN = 32
DERIVATION_MARKER = b"DerivedAddress"

PROJECT_TAG = b"project"
RECEIPT_TAG = b"receipt"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def normalize_identity(identity: str) -> str:
    """Return the canonical lowercase form of a 0x-prefixed 20-byte address.

    Raises:
        InvalidIdentity: If identity is not a hex address
    """
    if not isinstance(identity, str) or not Web3.is_address(identity.lower()):
        raise InvalidIdentity(f"Invalid identity: {identity!r}")
    return identity.lower()


def identity_bytes(identity: str) -> bytes:
    """Raw 20 bytes of an identity or derived address."""
    return Web3.to_bytes(hexstr=normalize_identity(identity))


def check_wallet_identity(identity: str) -> str:
    """Normalize a key-pair identity and reject addresses in the derived space.

    Owners, contributors and funded wallets must lie in the reserved half, so
    no wallet can occupy an address a project or receipt may later claim.

    Raises:
        InvalidIdentity: If identity is malformed or could be a derived address
    """
    identity = normalize_identity(identity)
    if not _is_reserved(identity_bytes(identity)):
        raise InvalidIdentity(f"Identity lies in the derived address space: {identity}")
    return identity


def _check_seeds(seeds: Sequence[bytes]) -> None:
    # The bump occupies one seed slot
    if len(seeds) >= MAX_SEEDS:
        raise TooManySeeds(f"At most {MAX_SEEDS - 1} seeds are allowed, got {len(seeds)}")
    for seed in seeds:
        if not isinstance(seed, (bytes, bytearray)):
            raise InvalidSeeds(f"Seeds must be bytes, got {type(seed).__name__}")
        if len(seed) > MAX_SEED_LEN:
            raise SeedTooLong(f"Seed is {len(seed)} bytes, maximum is {MAX_SEED_LEN}")


def _is_reserved(candidate: bytes) -> bool:
    return bool(candidate[-1] & 0x80)


def create_address(seeds: Sequence[bytes], bump: int, program_id: str) -> str:
    """Compute the address for ``seeds`` with an explicit bump.

    Args:
        seeds: Ordered seed byte strings
        bump: Disambiguation byte (0-255)
        program_id: Program id the address is derived under

    Returns:
        Lowercase 0x-prefixed address

    Raises:
        InvalidSeeds: If the seeds are malformed or the candidate is reserved
    """
    _check_seeds(seeds)
    if not 0 <= bump <= 255:
        raise InvalidSeeds(f"Bump must be in 0..255, got {bump}")

    preimage = b"".join(seeds) + bytes([bump]) + identity_bytes(program_id) + DERIVATION_MARKER
    candidate = bytes(Web3.keccak(preimage))[-20:]
    if _is_reserved(candidate):
        raise InvalidSeeds("Derived candidate falls in the reserved identity space")
    return "0x" + candidate.hex()


def find_address(seeds: Sequence[bytes], program_id: str) -> Tuple[str, int]:
    """Find the canonical (address, bump) pair for ``seeds``.

    Raises:
        AddressSpaceExhausted: If no bump yields a valid address
    """
    _check_seeds(seeds)
    for bump in range(255, -1, -1):
        try:
            return create_address(seeds, bump, program_id), bump
        except InvalidSeeds:
            continue
    raise AddressSpaceExhausted("Unable to find a viable bump for the given seeds")


def verify_address(address: str, seeds: Sequence[bytes], bump: int, program_id: str) -> None:
    """Check that ``address`` re-derives from ``seeds`` and ``bump``.

    Raises:
        AddressMismatch: If the derived address differs
    """
    expected = create_address(seeds, bump, program_id)
    actual = normalize_identity(address)
    if expected != actual:
        raise AddressMismatch(expected, actual)


def encode_seed_int(value: int) -> bytes:
    """Encode an integer seed as 8 little-endian signed bytes."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSeeds(f"Integer seed expected, got {type(value).__name__}")
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise InvalidSeeds(f"Seed {value} does not fit in a signed 64-bit integer")
    return value.to_bytes(8, "little", signed=True)


def project_seeds(owner: str, project_id: str) -> List[bytes]:
    """Seeds identifying a project: kind tag, owner and project id."""
    return [PROJECT_TAG, identity_bytes(owner), project_id.encode("utf-8")]


def receipt_seeds(contributor: str, project: str, acceptance_seed: int) -> List[bytes]:
    """Seeds identifying a receipt: kind tag, contributor, project and acceptance seed."""
    return [
        RECEIPT_TAG,
        identity_bytes(contributor),
        identity_bytes(project),
        encode_seed_int(acceptance_seed),
    ]


def derive_project_address(owner: str, project_id: str, program_id: str) -> Tuple[str, int]:
    return find_address(project_seeds(owner, project_id), program_id)


def derive_receipt_address(
    contributor: str, project: str, acceptance_seed: int, program_id: str
) -> Tuple[str, int]:
    return find_address(receipt_seeds(contributor, project, acceptance_seed), program_id)
