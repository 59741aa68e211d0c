"""Provisioning inventory derivation and Ansible inventory rendering.

``build_inventory`` maps a loaded cluster to the host list and the fixed,
ordered deployment groups the provisioning playbooks expect.
``InventoryWriter`` renders that structure as an Ansible YAML inventory
using ruamel.yaml.
"""

import shutil
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from cluster_lifecycle.constants import INVENTORY_NODE_STATUSES, NodeRole
from cluster_lifecycle.exceptions import InventoryError
from cluster_lifecycle.logging_config import get_logger
from cluster_lifecycle.models.cluster import Cluster
from cluster_lifecycle.models.inventory import Inventory, InventoryGroup, InventoryHost
from cluster_lifecycle.models.node import ClusterNode

logger = get_logger(__name__)

KUBE_MASTER_GROUP = "kube-master"
KUBE_WORKER_GROUP = "kube-worker"
NEW_WORKER_GROUP = "new-worker"
LB_GROUP = "lb"
ETCD_GROUP = "etcd"
CHRONY_GROUP = "chrony"
DEL_WORKER_GROUP = "del-worker"

GROUP_ORDER = (
    KUBE_MASTER_GROUP,
    KUBE_WORKER_GROUP,
    NEW_WORKER_GROUP,
    LB_GROUP,
    ETCD_GROUP,
    CHRONY_GROUP,
    DEL_WORKER_GROUP,
)


def node_to_host(node: ClusterNode) -> InventoryHost:
    """Describe a node's connection details from its host record."""
    host = node.host
    return InventoryHost(
        name=node.name,
        ip=host.ip,
        port=host.port or 22,
        user=host.user or "root",
        password=host.password or "",
        private_key_file=host.private_key_file or "",
    )


def build_inventory(cluster: Cluster) -> Inventory:
    """Build the provisioning inventory for a cluster.

    Every node appears in the host list. Only nodes whose status is unset
    or running are placed in the ``kube-master``/``etcd`` or
    ``kube-worker`` groups, and the first of those masters also runs
    chrony. All seven groups are always emitted, in ``GROUP_ORDER``.

    Args:
        cluster: Cluster with its nodes and their hosts loaded

    Returns:
        Inventory for the provisioning engine
    """
    hosts = []
    masters = []
    workers = []
    for node in cluster.nodes:
        hosts.append(node_to_host(node))
        if (node.status or "") not in INVENTORY_NODE_STATUSES:
            continue
        if node.role == NodeRole.MASTER.value:
            masters.append(node.name)
        elif node.role == NodeRole.WORKER.value:
            workers.append(node.name)

    chrony = masters[:1]

    return Inventory(
        hosts=hosts,
        groups=[
            InventoryGroup(name=KUBE_MASTER_GROUP, hosts=masters),
            InventoryGroup(name=KUBE_WORKER_GROUP, hosts=workers, children=[KUBE_MASTER_GROUP]),
            InventoryGroup(name=NEW_WORKER_GROUP),
            InventoryGroup(name=LB_GROUP),
            InventoryGroup(name=ETCD_GROUP, hosts=list(masters), children=[KUBE_MASTER_GROUP]),
            InventoryGroup(name=CHRONY_GROUP, hosts=chrony),
            InventoryGroup(name=DEL_WORKER_GROUP),
        ],
    )


class InventoryWriter:
    """Renders inventories in the Ansible YAML inventory layout."""

    def __init__(self):
        self.yaml = YAML()
        self.yaml.default_flow_style = False
        self.yaml.indent(mapping=2, sequence=2, offset=0)

    def render(self, inventory: Inventory, variables: dict[str, str] | None = None) -> CommentedMap:
        """Convert an inventory to the nested ``all`` mapping.

        Args:
            inventory: Inventory to render
            variables: Optional provisioning variables placed under ``all.vars``
        """
        all_group = CommentedMap()

        hosts = CommentedMap()
        for host in inventory.hosts:
            hosts[host.name] = CommentedMap(host.to_ansible_vars())
        all_group["hosts"] = hosts

        if variables:
            all_group["vars"] = CommentedMap(variables)

        children = CommentedMap()
        for group in inventory.groups:
            group_data = CommentedMap()
            group_data["hosts"] = CommentedMap({name: None for name in group.hosts})
            if group.children:
                group_data["children"] = CommentedMap({name: None for name in group.children})
            if group.vars:
                group_data["vars"] = CommentedMap(group.vars)
            children[group.name] = group_data
        all_group["children"] = children

        data = CommentedMap()
        data["all"] = all_group
        return data

    def dump(self, inventory: Inventory, stream, variables: dict[str, str] | None = None) -> None:
        """Write the rendered inventory to an open stream."""
        self.yaml.dump(self.render(inventory, variables), stream)

    def write(
        self, inventory: Inventory, path: str | Path, variables: dict[str, str] | None = None
    ) -> None:
        """Write the rendered inventory to a file, keeping a backup of the old one.

        Raises:
            InventoryError: If the file cannot be written
        """
        path = Path(path)
        logger.debug(f"Writing inventory file: {path}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            if path.exists():
                backup_path = path.with_suffix(".yml.backup")
                logger.debug(f"Creating backup at: {backup_path}")
                shutil.copy2(path, backup_path)

            with open(path, "w") as f:
                self.dump(inventory, f, variables)

            logger.info(f"Successfully wrote inventory file: {path}")

        except PermissionError as e:
            logger.error(f"Permission denied writing inventory file: {e}")
            raise InventoryError(
                f"Permission denied writing inventory file: {path}",
                "Check file permissions or try running with appropriate privileges",
            )
        except OSError as e:
            logger.error(f"OS error writing inventory file: {e}")
            raise InventoryError(
                f"Failed to write inventory file: {e}",
                "Check disk space and file system permissions",
            )
