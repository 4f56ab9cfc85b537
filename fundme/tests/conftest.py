"""Shared fixtures for ledger tests."""

import os

import pytest

from fundme.config import Config
from fundme.db.models import Base
from fundme.db.session import create_schema, dispose_db, get_engine, init_db
from fundme.runtime.clock import FixedClock
from fundme.runtime.environment import ExecutionEnvironment
from fundme.services.ledger import DonationLedger
from fundme.services.registry import ProjectMetadata, ProjectRegistry

NOW = 1_735_603_200

OWNER = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
ALICE = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
BOB = "0x90f79bf6eb2c4f870365e785982e1f101e93b986"
CAROL = "0x15d34aaf54267db7d7c367839aaf71a00a2c6ae5"


@pytest.fixture
def test_config():
    """Test configuration."""
    return Config(
        db_url=os.getenv("TEST_DB_URL", "sqlite://"),
        program_id="0x5fbdb2315678afecb367f032d93f642f64180aa3",
    )


@pytest.fixture
def db(test_config):
    """Fresh ledger schema for each test."""
    dispose_db()
    init_db(test_config)
    create_schema()
    yield
    Base.metadata.drop_all(get_engine())
    dispose_db()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def env(db, test_config, clock):
    return ExecutionEnvironment(test_config, clock=clock)


@pytest.fixture
def registry(env):
    return ProjectRegistry(env)


@pytest.fixture
def ledger(env):
    return DonationLedger(env)


@pytest.fixture
def metadata():
    return ProjectMetadata(
        title="Donation Test Project",
        description="A project for testing donations",
        image_url="https://example.com/image.png",
    )
