"""Projection of cluster specification fields onto provisioning variables."""

from cluster_lifecycle.constants import (
    CONTAINER_RUNTIME_FACT,
    CONTAINERD_STORAGE_DIR_FACT,
    DOCKER_STORAGE_DIR_FACT,
    KUBE_POD_SUBNET_FACT,
    KUBE_SERVICE_SUBNET_FACT,
    LB_KUBE_APISERVER_IP_FACT,
    NETWORK_PLUGIN_FACT,
)
from cluster_lifecycle.models.cluster import ClusterSpec

# Specification attribute -> fact name, in playbook order
SPEC_FACTS = (
    ("network_type", NETWORK_PLUGIN_FACT),
    ("runtime_type", CONTAINER_RUNTIME_FACT),
    ("docker_storage_dir", DOCKER_STORAGE_DIR_FACT),
    ("containerd_storage_dir", CONTAINERD_STORAGE_DIR_FACT),
    ("lb_kube_apiserver_ip", LB_KUBE_APISERVER_IP_FACT),
    ("kube_pod_subnet", KUBE_POD_SUBNET_FACT),
    ("kube_service_subnet", KUBE_SERVICE_SUBNET_FACT),
)


def project_variables(spec: ClusterSpec | None) -> dict[str, str]:
    """Map specification fields to provisioning variables.

    Fields left empty are omitted so the playbooks apply their own defaults.
    Values are passed through unvalidated.
    """
    result = {}
    if spec is None:
        return result
    for attribute, fact_name in SPEC_FACTS:
        value = getattr(spec, attribute)
        if value:
            result[fact_name] = value
    return result
