"""Data models for the cluster aggregate and its derived views."""

from cluster_lifecycle.models.base import Base
from cluster_lifecycle.models.cluster import (
    Cluster,
    ClusterSecret,
    ClusterSpec,
    ClusterStatus,
    ClusterTool,
)
from cluster_lifecycle.models.definition import ClusterDefinition, NodeDefinition, SpecDefinition
from cluster_lifecycle.models.inventory import Inventory, InventoryGroup, InventoryHost
from cluster_lifecycle.models.node import ClusterNode, Host

__all__ = [
    "Base",
    "Cluster",
    "ClusterSpec",
    "ClusterStatus",
    "ClusterSecret",
    "ClusterTool",
    "ClusterNode",
    "Host",
    "ClusterDefinition",
    "NodeDefinition",
    "SpecDefinition",
    "Inventory",
    "InventoryGroup",
    "InventoryHost",
]
