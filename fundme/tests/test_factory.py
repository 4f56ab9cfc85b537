"""Tests for wiring the ledger services from configuration."""

import json
from dataclasses import replace
from unittest.mock import patch

from fundme.messaging.publisher import EventPublisher
from fundme.services.factory import build_services

from conftest import ALICE, NOW, OWNER


def test_publishing_disabled_by_default(db, test_config, clock):
    services = build_services(test_config, clock=clock)

    assert services.publisher is None
    assert services.registry.publisher is None
    assert services.ledger.publisher is None
    assert services.registry.env is services.ledger.env is services.env


def test_publish_events_flag_reaches_broker(db, test_config, clock, metadata):
    config = replace(test_config, publish_events=True, rabbitmq_exchange="fundme_test")

    with patch("fundme.messaging.publisher.RabbitMQConnection") as connection_cls:
        services = build_services(config, clock=clock)
        assert isinstance(services.publisher, EventPublisher)
        assert services.ledger.publisher is services.publisher

        project = services.registry.create_project(OWNER, "wired", metadata, 1_000, NOW + 3600)
        services.env.fund_account(ALICE, 100)
        receipt = services.ledger.donate(ALICE, project, 100, acceptance_seed=1)
        services.close()

    calls = connection_cls.return_value.channel.basic_publish.call_args_list
    assert [c.kwargs["routing_key"] for c in calls] == ["event.project_created", "event.donation_received"]
    assert {c.kwargs["exchange"] for c in calls} == {"fundme_test"}
    assert json.loads(calls[1].kwargs["body"])["address"] == receipt
    connection_cls.return_value.close.assert_called_once()
    assert services.publisher.events_published_count == 2
