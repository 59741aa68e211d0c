"""Shared constants for cluster lifecycle management."""

from enum import Enum


class NodeRole(str, Enum):
    """Role a node plays inside a cluster."""

    MASTER = "master"
    WORKER = "worker"


class ClusterPhase(str, Enum):
    """Lifecycle phases shared by clusters, nodes and companion tools."""

    WAITING = "Waiting"
    CREATING = "Creating"
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    NOT_READY = "NotReady"
    FAILED = "Failed"
    TERMINATING = "Terminating"


# Node statuses that still count a node towards its role group in the inventory
INVENTORY_NODE_STATUSES = ("", ClusterPhase.RUNNING.value)

# Fact names understood by the provisioning playbooks
NETWORK_PLUGIN_FACT = "network_plugin"
CONTAINER_RUNTIME_FACT = "container_runtime"
DOCKER_STORAGE_DIR_FACT = "docker_storage_dir"
CONTAINERD_STORAGE_DIR_FACT = "containerd_storage_dir"
LB_KUBE_APISERVER_IP_FACT = "lb_kube_apiserver_ip"
KUBE_POD_SUBNET_FACT = "kube_pod_subnet"
KUBE_SERVICE_SUBNET_FACT = "kube_service_subnet"

DEFAULT_CLUSTER_SOURCE = "local"
DEFAULT_DATABASE_URL = "sqlite:///clusters.db"
DATABASE_URL_ENV = "CLUSTER_LIFECYCLE_DATABASE_URL"
