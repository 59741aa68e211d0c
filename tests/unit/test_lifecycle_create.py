"""Tests for atomic cluster creation."""

import pytest

from cluster_lifecycle.catalog import TOOL_CATALOG
from cluster_lifecycle.exceptions import (
    ConflictError,
    HostAssignmentError,
    NotFoundError,
    RollbackError,
    StoreError,
    ValidationError,
)
from cluster_lifecycle.lifecycle import LifecycleManager
from cluster_lifecycle.models import (
    Cluster,
    ClusterNode,
    ClusterSecret,
    ClusterSpec,
    ClusterStatus,
    ClusterTool,
    Host,
)
from cluster_lifecycle.store import Transaction

AGGREGATE_MODELS = [Cluster, ClusterSpec, ClusterStatus, ClusterSecret, ClusterNode, ClusterTool]


def failing_transaction(create_on=None, save_on=None, rollback_fails=False):
    """Build a Transaction class that fails on writes of the given model."""

    class FailingTransaction(Transaction):
        def create(self, entity):
            if create_on is not None and isinstance(entity, create_on):
                raise StoreError(f"injected create failure for {type(entity).__name__}")
            return super().create(entity)

        def save(self, entity):
            if save_on is not None and isinstance(entity, save_on):
                raise StoreError(f"injected save failure for {type(entity).__name__}")
            return super().save(entity)

        def rollback(self):
            if rollback_fails:
                raise StoreError("injected rollback failure")
            super().rollback()

    return FailingTransaction


def test_create_persists_complete_aggregate(store, manager, hosts, new_cluster, count_rows):
    """A successful create writes every part of the aggregate exactly once."""
    cluster = manager.create_cluster(new_cluster("alpha", hosts))

    assert cluster.id
    assert count_rows(store, Cluster) == 1
    assert count_rows(store, ClusterSpec, id=cluster.spec_id) == 1
    assert count_rows(store, ClusterStatus, id=cluster.status_id) == 1
    assert count_rows(store, ClusterSecret, id=cluster.secret_id) == 1
    assert count_rows(store, ClusterNode, cluster_id=cluster.id) == len(hosts)
    assert count_rows(store, ClusterTool, cluster_id=cluster.id) == len(TOOL_CATALOG)

    loaded = manager.get_cluster(cluster.id)
    assert loaded.spec.id == cluster.spec_id
    assert loaded.status.id == cluster.status_id
    assert loaded.secret.id == cluster.secret_id
    assert loaded.spec.network_type == "calico"
    assert loaded.status.phase == "Waiting"
    assert [node.name for node in loaded.nodes] == [
        "alpha-node-1",
        "alpha-node-2",
        "alpha-node-3",
    ]
    assert {tool.name for tool in loaded.tools} == {entry.name for entry in TOOL_CATALOG}
    assert all(tool.status == "Waiting" for tool in loaded.tools)


def test_create_transfers_host_ownership(store, manager, hosts, new_cluster):
    """Every host backing a node is bound to the new cluster."""
    cluster = manager.create_cluster(new_cluster("alpha", hosts))

    tx = store.begin()
    try:
        stored_hosts = tx.find_all(Host)
    finally:
        tx.close()

    assert len(stored_hosts) == len(hosts)
    assert all(host.cluster_id == cluster.id for host in stored_hosts)


def test_create_returns_attached_nodes_and_tools(manager, hosts, new_cluster):
    cluster = manager.create_cluster(new_cluster("alpha", hosts))

    assert len(cluster.nodes) == len(hosts)
    assert all(node.cluster_id == cluster.id for node in cluster.nodes)
    assert [node.host.name for node in cluster.nodes] == [host.name for host in hosts]
    assert len(cluster.tools) == len(TOOL_CATALOG)


def test_create_accepts_host_object_reference(manager, hosts):
    """Nodes may reference their host by object instead of id."""
    cluster = Cluster(
        name="by-object",
        spec=ClusterSpec(),
        status=ClusterStatus(),
        secret=ClusterSecret(),
        nodes=[ClusterNode(name="master-1", role="master", host=hosts[0])],
    )

    created = manager.create_cluster(cluster)

    assert created.nodes[0].host_id == hosts[0].id
    assert manager.get_cluster(created.id).nodes[0].host.cluster_id == created.id


def test_create_fills_in_missing_parts(store, manager, count_rows):
    """Missing specification, status and secret are created with defaults."""
    cluster = manager.create_cluster(Cluster(name="bare"))

    assert cluster.spec_id and cluster.status_id and cluster.secret_id
    assert count_rows(store, ClusterNode) == 0
    assert count_rows(store, ClusterTool, cluster_id=cluster.id) == len(TOOL_CATALOG)


def test_duplicate_name_is_a_conflict(store, manager, hosts, new_cluster, count_rows):
    """A second cluster with the same name fails and leaves the first untouched."""
    first = manager.create_cluster(new_cluster("alpha", hosts[:1]))

    with pytest.raises(ConflictError):
        manager.create_cluster(new_cluster("alpha", hosts[1:]))

    assert count_rows(store, Cluster) == 1
    assert count_rows(store, ClusterSpec) == 1
    assert count_rows(store, ClusterStatus) == 1
    assert count_rows(store, ClusterSecret) == 1
    assert count_rows(store, ClusterNode, cluster_id=first.id) == 1
    assert count_rows(store, ClusterNode) == 1
    assert count_rows(store, ClusterTool) == len(TOOL_CATALOG)
    assert count_rows(store, Host, cluster_id=None) == len(hosts) - 1


def test_host_cannot_join_two_clusters(store, manager, hosts, new_cluster, count_rows):
    """A host owned by one cluster is rejected by another."""
    first = manager.create_cluster(new_cluster("alpha", hosts[:1]))

    with pytest.raises(HostAssignmentError) as exc_info:
        manager.create_cluster(new_cluster("beta", hosts[:2]))

    assert isinstance(exc_info.value, ConflictError)
    assert hosts[0].name in exc_info.value.message
    assert count_rows(store, Cluster) == 1
    assert count_rows(store, Host, cluster_id=first.id) == 1
    assert count_rows(store, Host, cluster_id=None) == len(hosts) - 1


def test_unknown_host_is_not_found(store, manager, count_rows):
    cluster = Cluster(
        name="ghost",
        nodes=[ClusterNode(name="n1", role="master", host_id="does-not-exist")],
    )

    with pytest.raises(NotFoundError):
        manager.create_cluster(cluster)

    for model in AGGREGATE_MODELS:
        assert count_rows(store, model) == 0


def test_node_without_host_is_rejected(store, manager, count_rows):
    cluster = Cluster(name="hostless", nodes=[ClusterNode(name="n1", role="worker")])

    with pytest.raises(ValidationError):
        manager.create_cluster(cluster)

    assert count_rows(store, Cluster) == 0


@pytest.mark.parametrize(
    "create_on,save_on",
    [
        (ClusterSpec, None),
        (ClusterStatus, None),
        (ClusterSecret, None),
        (Cluster, None),
        (ClusterNode, None),
        (None, Host),
        (ClusterTool, None),
    ],
    ids=["spec", "status", "secret", "cluster", "node", "host", "tool"],
)
def test_failed_step_leaves_no_trace(
    store_factory, register_hosts, new_cluster, count_rows, create_on, save_on
):
    """A failure at any persistence step rolls back the whole aggregate."""
    store = store_factory(failing_transaction(create_on=create_on, save_on=save_on))
    hosts = register_hosts(store, 3)
    manager = LifecycleManager(store)

    with pytest.raises(StoreError, match="injected"):
        manager.create_cluster(new_cluster("alpha", hosts))

    for model in AGGREGATE_MODELS:
        assert count_rows(store, model) == 0, model.__name__
    assert count_rows(store, Host) == len(hosts)
    assert count_rows(store, Host, cluster_id=None) == len(hosts)


def test_failed_rollback_reports_both_errors(
    store_factory, register_hosts, new_cluster, count_rows
):
    """When the rollback fails too, both errors are surfaced together."""
    store = store_factory(failing_transaction(create_on=ClusterTool, rollback_fails=True))
    hosts = register_hosts(store, 2)
    manager = LifecycleManager(store)

    with pytest.raises(RollbackError) as exc_info:
        manager.create_cluster(new_cluster("alpha", hosts))

    error = exc_info.value
    assert "injected create failure" in str(error.original)
    assert "injected rollback failure" in str(error.rollback_error)
    assert isinstance(error, StoreError)
    # The transaction is still discarded when its session closes
    assert count_rows(store, Cluster) == 0


def test_failed_create_keeps_nodes_for_retry(store, manager, hosts, new_cluster, count_rows):
    """After a conflict the caller's cluster still holds every node it passed in."""
    manager.create_cluster(new_cluster("alpha", hosts[:1]))
    cluster = new_cluster("alpha", hosts[1:])

    with pytest.raises(ConflictError):
        manager.create_cluster(cluster)

    assert [node.name for node in cluster.nodes] == ["alpha-node-1", "alpha-node-2"]

    cluster.name = "beta"
    retried = manager.create_cluster(cluster)

    assert count_rows(store, ClusterNode, cluster_id=retried.id) == 2
    assert count_rows(store, Host, cluster_id=retried.id) == 2
    assert count_rows(store, ClusterTool, cluster_id=retried.id) == len(TOOL_CATALOG)


def test_retry_after_partial_node_failure(store, manager, hosts, new_cluster, count_rows):
    """Nodes written before a failing node are written again on retry."""
    manager.create_cluster(new_cluster("alpha", hosts[:1]))
    cluster = new_cluster("beta", [hosts[1], hosts[0]])

    with pytest.raises(HostAssignmentError):
        manager.create_cluster(cluster)

    assert len(cluster.nodes) == 2
    assert count_rows(store, ClusterNode) == 1

    cluster.nodes[1].host_id = hosts[2].id
    retried = manager.create_cluster(cluster)

    assert count_rows(store, ClusterNode, cluster_id=retried.id) == 2
    assert [node.host.name for node in manager.get_cluster(retried.id).nodes] == [
        hosts[1].name,
        hosts[2].name,
    ]


def test_host_cannot_back_two_nodes(store, manager, hosts, count_rows):
    """One host may back only one node, even within a single cluster."""
    cluster = Cluster(
        name="shared",
        nodes=[
            ClusterNode(name="n1", role="master", host_id=hosts[0].id),
            ClusterNode(name="n2", role="worker", host_id=hosts[0].id),
        ],
    )

    with pytest.raises(HostAssignmentError, match="more than one node"):
        manager.create_cluster(cluster)

    for model in AGGREGATE_MODELS:
        assert count_rows(store, model) == 0, model.__name__
    assert count_rows(store, Host, cluster_id=None) == len(hosts)


def test_reload_keeps_catalog_tool_order(manager, hosts, new_cluster):
    cluster = manager.create_cluster(new_cluster("alpha", hosts))
    catalog_order = [entry.name for entry in TOOL_CATALOG]

    assert [tool.name for tool in cluster.tools] == catalog_order
    assert [tool.name for tool in manager.get_cluster(cluster.id).tools] == catalog_order
