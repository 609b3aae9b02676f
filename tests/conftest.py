"""Pytest configuration and fixtures."""

import pytest

from podreaper.safety.models import (
    DisruptionBudget,
    OwnerReference,
    Pod,
    PodCondition,
    PodPhase,
)


@pytest.fixture
def make_pod():
    """Factory fixture building pods with sensible defaults."""

    def _make_pod(
        name,
        labels=None,
        namespace="shop",
        phase=PodPhase.RUNNING,
        ready=True,
        owners=None,
    ):
        conditions = [PodCondition(type="Ready", status="True" if ready else "False")]
        return Pod(
            name=name,
            namespace=namespace,
            phase=phase,
            labels=dict(labels or {}),
            owner_references=[OwnerReference(kind=k, name=n) for k, n in (owners or [])],
            conditions=conditions,
        )

    return _make_pod


@pytest.fixture
def web_pods(make_pod):
    """Three running, ready web pods owned by a ReplicaSet."""
    return [
        make_pod(f"web-{i}", {"app": "web", "tier": "frontend"}, owners=[("ReplicaSet", "web-5d9f")])
        for i in range(3)
    ]


@pytest.fixture
def mixed_pods(make_pod, web_pods):
    """A namespace with web, db, daemon and not-yet-running pods."""
    return web_pods + [
        make_pod("db-0", {"app": "db", "tier": "backend"}, owners=[("StatefulSet", "db")]),
        make_pod("db-1", {"app": "db", "tier": "backend"}, owners=[("StatefulSet", "db")]),
        make_pod("log-agent-x7k2", {"app": "log-agent"}, owners=[("DaemonSet", "log-agent")]),
        make_pod("web-pending", {"app": "web", "tier": "frontend"}, phase=PodPhase.PENDING, ready=False),
    ]


@pytest.fixture
def web_min2_budget():
    """minAvailable=2 over app=web, in structured LabelSelector form."""
    return DisruptionBudget(
        name="web-pdb",
        namespace="shop",
        selector={"matchLabels": {"app": "web"}},
        min_available=2,
    )


@pytest.fixture
def db_max1_budget():
    """maxUnavailable=1 over app=db."""
    return DisruptionBudget(
        name="db-pdb",
        namespace="shop",
        selector={"matchLabels": {"app": "db"}},
        max_unavailable=1,
    )


@pytest.fixture
def broken_budget():
    """Budget whose selector uses an operator Kubernetes does not know."""
    return DisruptionBudget(
        name="broken-pdb",
        namespace="shop",
        selector={"matchExpressions": [{"key": "app", "operator": "Matches", "values": ["web"]}]},
        min_available=1,
    )


class SequenceRandom:
    """Deterministic stand-in for random.SystemRandom.

    ``randrange(n)`` cycles through 0..n-1 so repeated draws enumerate every
    outcome exactly once per cycle.
    """

    def __init__(self):
        self.calls = 0

    def randrange(self, n):
        value = self.calls % n
        self.calls += 1
        return value


@pytest.fixture
def sequence_rng():
    return SequenceRandom()
