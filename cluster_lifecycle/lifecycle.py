"""Atomic creation and deletion of the cluster aggregate.

A cluster is persisted together with its specification, status, secret,
member nodes and companion tools inside a single transaction. Hosts backing
the nodes are bound to the new cluster in that same transaction, so either
the whole aggregate becomes visible or none of it does.
"""

from cluster_lifecycle.catalog import prepare_tools
from cluster_lifecycle.exceptions import (
    HostAssignmentError,
    NotFoundError,
    RollbackError,
    StoreError,
    ValidationError,
)
from cluster_lifecycle.inventory import build_inventory
from cluster_lifecycle.logging_config import get_logger
from cluster_lifecycle.models.base import new_id
from cluster_lifecycle.models.cluster import Cluster, ClusterSecret, ClusterSpec, ClusterStatus
from cluster_lifecycle.models.definition import ClusterDefinition
from cluster_lifecycle.models.inventory import Inventory
from cluster_lifecycle.models.node import ClusterNode, Host
from cluster_lifecycle.store import AggregateStore, Transaction
from cluster_lifecycle.variables import project_variables

logger = get_logger(__name__)

# Relationships loaded whenever a full aggregate is read
AGGREGATE_RELATIONS = ["spec", "status", "secret", "nodes", "nodes.host", "tools"]


class LifecycleManager:
    """Creates, loads and deletes cluster aggregates."""

    def __init__(self, store: AggregateStore):
        """Initialize the lifecycle manager.

        Args:
            store: Store handing out the transactions every operation runs in
        """
        self.store = store

    def create_cluster(self, cluster: Cluster) -> Cluster:
        """Persist a cluster and everything it owns in one transaction.

        The cluster must carry its specification, status and secret (missing
        ones are created with defaults) and its nodes, each pointing at a
        host through ``host_id`` or ``host``.

        Args:
            cluster: Unsaved cluster aggregate

        Returns:
            The persisted cluster with nodes, hosts and tools attached

        Raises:
            ConflictError: If the cluster name is taken or a host belongs to
                another cluster
            NotFoundError: If a node references an unknown host
            StoreError: If any write fails; nothing is persisted
        """
        cluster.id = new_id()
        logger.info(f"Creating cluster '{cluster.name}' ({cluster.id})")

        nodes = list(cluster.nodes)
        tx = self.store.begin()
        try:
            self._persist_aggregate(tx, cluster, nodes)
            tx.commit()
        except Exception as e:
            logger.error(f"Creating cluster '{cluster.name}' failed: {e}")
            try:
                self._rollback(tx, e)
            finally:
                # Hand back the caller's nodes so a retry writes all of them
                cluster.nodes = nodes
                cluster.tools = []
            raise
        finally:
            tx.close()

        logger.info(
            f"Created cluster '{cluster.name}' with {len(cluster.nodes)} nodes "
            f"and {len(cluster.tools)} tools"
        )
        return cluster

    def create_from_definition(self, definition: ClusterDefinition) -> Cluster:
        """Create a cluster from an operator definition, resolving hosts by name.

        Raises:
            NotFoundError: If a referenced host is not registered
        """
        tx = self.store.begin()
        try:
            nodes = []
            for node_def in definition.nodes:
                host = tx.find_by(Host, name=node_def.host)
                if host is None:
                    raise NotFoundError(
                        f"Host '{node_def.host}' not found",
                        "Register it first with 'cluster-lifecycle add-host'",
                    )
                nodes.append(ClusterNode(name=node_def.name, role=node_def.role, host_id=host.id))
        finally:
            tx.close()

        cluster = Cluster(
            name=definition.name,
            source=definition.source,
            spec=ClusterSpec(**definition.spec.model_dump()),
            status=ClusterStatus(),
            secret=ClusterSecret(),
            nodes=nodes,
        )
        return self.create_cluster(cluster)

    def _persist_aggregate(
        self, tx: Transaction, cluster: Cluster, nodes: list[ClusterNode]
    ) -> None:
        # Nodes are written one at a time below, after their cluster row exists.
        # Tools always come from the catalog.
        cluster.nodes = []
        cluster.tools = []

        cluster.spec = cluster.spec or ClusterSpec()
        cluster.status = cluster.status or ClusterStatus()
        cluster.secret = cluster.secret or ClusterSecret()

        logger.debug(f"Persisting specification, status and secret for '{cluster.name}'")
        tx.create(cluster.spec)
        tx.create(cluster.status)
        tx.create(cluster.secret)
        cluster.spec_id = cluster.spec.id
        cluster.status_id = cluster.status.id
        cluster.secret_id = cluster.secret.id

        tx.create(cluster)

        assigned_hosts: set[str] = set()
        for sequence, node in enumerate(nodes):
            self._add_node(tx, cluster, node, sequence, assigned_hosts)

        for tool in prepare_tools(cluster.id):
            logger.debug(f"Adding tool '{tool.name}' to '{cluster.name}'")
            tx.create(tool)
            cluster.tools.append(tool)

    def _add_node(
        self,
        tx: Transaction,
        cluster: Cluster,
        node: ClusterNode,
        sequence: int,
        assigned_hosts: set[str],
    ) -> None:
        host_id = node.host_id or (node.host.id if node.host is not None else None)
        if not host_id:
            raise ValidationError(f"Node '{node.name}' does not reference a host")

        host = tx.find(Host, host_id)
        if host.id in assigned_hosts:
            raise HostAssignmentError(
                f"Host '{host.name}' backs more than one node of cluster '{cluster.name}'",
                "Give every node its own host",
            )
        assigned_hosts.add(host.id)
        logger.debug(f"Adding node '{node.name}' on host '{host.name}' to '{cluster.name}'")

        node.cluster_id = cluster.id
        node.host = host
        node.sequence = sequence
        tx.create(node)

        self._transfer_host(tx, host, cluster)
        cluster.nodes.append(node)

    def _transfer_host(self, tx: Transaction, host: Host, cluster: Cluster) -> None:
        if host.cluster_id and host.cluster_id != cluster.id:
            raise HostAssignmentError(
                f"Host '{host.name}' already belongs to cluster '{host.cluster_id}'",
                "Delete that cluster or pick another host",
            )
        host.cluster_id = cluster.id
        tx.save(host)

    def delete_cluster(self, cluster_id: str) -> None:
        """Delete a cluster and everything it owns in one transaction.

        Specification, status, secret, nodes and tools are all removed and
        the cluster's hosts are released (``cluster_id`` cleared) before the
        cluster row itself goes. Every step shares the same transaction, so a
        failure rolls the whole deletion back.

        Raises:
            NotFoundError: If no cluster has that id
            StoreError: If any delete fails; the aggregate is left intact
        """
        tx = self.store.begin()
        try:
            cluster = tx.find(
                Cluster, cluster_id, eager=["status", "spec", "secret", "nodes", "tools"]
            )
            logger.info(f"Deleting cluster '{cluster.name}' ({cluster.id})")

            for node in cluster.nodes:
                logger.debug(f"Deleting node '{node.name}'")
                tx.delete(node)
            for tool in cluster.tools:
                tx.delete(tool)
            for host in tx.find_all(Host, cluster_id=cluster.id):
                logger.debug(f"Releasing host '{host.name}'")
                host.cluster_id = None
                tx.save(host)

            # The cluster row references spec, status and secret, so it goes first
            tx.delete(cluster)
            if cluster.spec is not None:
                tx.delete(cluster.spec)
            if cluster.status is not None:
                tx.delete(cluster.status)
            if cluster.secret is not None:
                tx.delete(cluster.secret)

            tx.commit()
        except Exception as e:
            logger.error(f"Deleting cluster '{cluster_id}' failed: {e}")
            self._rollback(tx, e)
            raise
        finally:
            tx.close()

        logger.info(f"Deleted cluster '{cluster_id}'")

    def delete_cluster_by_name(self, name: str) -> None:
        self.delete_cluster(self.get_cluster_by_name(name).id)

    def _rollback(self, tx: Transaction, error: Exception) -> None:
        """Roll back after a failed step.

        Raises:
            RollbackError: If the rollback itself fails, carrying both errors
        """
        try:
            tx.rollback()
        except StoreError as rollback_error:
            logger.error(f"Rollback failed: {rollback_error.message}")
            raise RollbackError(
                "Rollback failed after an aborted lifecycle operation",
                original=error,
                rollback_error=rollback_error,
            ) from error

    def get_cluster(self, cluster_id: str) -> Cluster:
        """Load a full aggregate by id.

        Raises:
            NotFoundError: If no cluster has that id
        """
        tx = self.store.begin()
        try:
            return tx.find(Cluster, cluster_id, eager=AGGREGATE_RELATIONS)
        finally:
            tx.close()

    def get_cluster_by_name(self, name: str) -> Cluster:
        """Load a full aggregate by name.

        Raises:
            NotFoundError: If no cluster has that name
        """
        tx = self.store.begin()
        try:
            cluster = tx.find_by(Cluster, eager=AGGREGATE_RELATIONS, name=name)
        finally:
            tx.close()
        if cluster is None:
            raise NotFoundError(f"Cluster '{name}' not found")
        return cluster

    def list_clusters(self) -> list[Cluster]:
        tx = self.store.begin()
        try:
            return tx.find_all(Cluster, order_by=Cluster.name, eager=["status", "nodes"])
        finally:
            tx.close()

    def inventory(self, name: str) -> Inventory:
        """Build the provisioning inventory for a stored cluster."""
        return build_inventory(self.get_cluster_by_name(name))

    def variables(self, name: str) -> dict[str, str]:
        """Project the provisioning variables for a stored cluster."""
        return project_variables(self.get_cluster_by_name(name).spec)
