"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from cluster_lifecycle.lifecycle import LifecycleManager
from cluster_lifecycle.models import (
    Cluster,
    ClusterNode,
    ClusterSecret,
    ClusterSpec,
    ClusterStatus,
    Host,
)
from cluster_lifecycle.store import AggregateStore, Transaction, create_store_engine

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


def _make_store(transaction_cls: type[Transaction] = Transaction) -> AggregateStore:
    """Create a store over a fresh in-memory SQLite database."""
    store = AggregateStore(create_store_engine("sqlite://"), transaction_cls=transaction_cls)
    store.create_schema()
    return store


def _register_hosts(store: AggregateStore, count: int) -> list[Host]:
    """Insert unassigned hosts named host-1..host-N."""
    tx = store.begin()
    hosts = [
        tx.create(Host(name=f"host-{i}", ip=f"10.0.0.{i}", port=22, user="root"))
        for i in range(1, count + 1)
    ]
    tx.commit()
    tx.close()
    return hosts


def _new_cluster(name: str, hosts: list[Host], roles: list[str] | None = None) -> Cluster:
    """Build an unsaved cluster with one node per host."""
    roles = roles or ["master"] + ["worker"] * (len(hosts) - 1)
    return Cluster(
        name=name,
        spec=ClusterSpec(network_type="calico", runtime_type="containerd"),
        status=ClusterStatus(),
        secret=ClusterSecret(kubeadm_token="abcdef.0123456789abcdef"),
        nodes=[
            ClusterNode(name=f"{name}-node-{i}", role=role, host_id=host.id)
            for i, (host, role) in enumerate(zip(hosts, roles), start=1)
        ],
    )


def _count_rows(store: AggregateStore, model, **filters) -> int:
    """Count committed rows of a model matching column filters."""
    tx = store.begin()
    try:
        return len(tx.find_all(model, **filters))
    finally:
        tx.close()


@pytest.fixture
def store():
    """Empty in-memory store."""
    store = _make_store()
    yield store
    store.engine.dispose()


@pytest.fixture
def hosts(store):
    """Three registered, unassigned hosts."""
    return _register_hosts(store, 3)


@pytest.fixture
def manager(store):
    return LifecycleManager(store)


@pytest.fixture
def store_factory():
    """Create extra stores, e.g. with a fault-injecting transaction class."""
    created = []

    def factory(transaction_cls: type[Transaction] = Transaction) -> AggregateStore:
        store = _make_store(transaction_cls)
        created.append(store)
        return store

    yield factory
    for store in created:
        store.engine.dispose()


@pytest.fixture
def register_hosts():
    return _register_hosts


@pytest.fixture
def new_cluster():
    return _new_cluster


@pytest.fixture
def count_rows():
    return _count_rows
