"""Tests for alert policies."""

import pytest

from agent_dashboard.models import AlertConfig
from agent_dashboard.services.alert_policy import (
    ConsecutiveFailurePolicy,
    NeverEscalate,
    build_alert_policy,
)


def test_never_escalate():
    assert NeverEscalate().should_escalate("a1", "Bash", "boom", 1000) is False


def test_consecutive_failures_threshold():
    policy = ConsecutiveFailurePolicy(3)
    assert not policy.should_escalate("a1", "Bash", "boom", 2)
    assert policy.should_escalate("a1", "Bash", "boom", 3)


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        ConsecutiveFailurePolicy(0)


def test_build_from_config():
    assert isinstance(build_alert_policy(AlertConfig()), NeverEscalate)

    policy = build_alert_policy(AlertConfig(consecutive_failure_threshold=5))
    assert isinstance(policy, ConsecutiveFailurePolicy)
    assert policy.threshold == 5
