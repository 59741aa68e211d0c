"""Declarative cluster definitions loaded from YAML files."""

import re

import yaml
from pydantic import BaseModel, Field, field_validator

from cluster_lifecycle.constants import DEFAULT_CLUSTER_SOURCE, NodeRole


class SpecDefinition(BaseModel):
    """Specification overrides; empty values keep the playbook defaults."""

    network_type: str = ""
    runtime_type: str = ""
    docker_storage_dir: str = ""
    containerd_storage_dir: str = ""
    lb_kube_apiserver_ip: str = ""
    kube_pod_subnet: str = ""
    kube_service_subnet: str = ""


class NodeDefinition(BaseModel):
    """A cluster member bound to a registered host by name."""

    name: str
    host: str
    role: str = NodeRole.WORKER.value

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate node name follows DNS naming conventions."""
        if not v:
            raise ValueError("name cannot be empty")
        if len(v) > 253:
            raise ValueError("name cannot exceed 253 characters")
        # RFC 1123 hostname validation
        hostname_pattern = re.compile(
            r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$", re.IGNORECASE
        )
        if not hostname_pattern.match(v):
            raise ValueError(
                f"name '{v}' must contain only alphanumeric characters, "
                "hyphens, and dots, and cannot start or end with a hyphen"
            )
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Validate role is either master or worker."""
        allowed_roles = [role.value for role in NodeRole]
        if v not in allowed_roles:
            raise ValueError(f"role must be one of {allowed_roles}, got '{v}'")
        return v


class ClusterDefinition(BaseModel):
    """Cluster to create, as written by an operator."""

    name: str
    source: str = DEFAULT_CLUSTER_SOURCE
    spec: SpecDefinition = Field(default_factory=SpecDefinition)
    nodes: list[NodeDefinition] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate cluster name is not empty."""
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v

    @field_validator("nodes")
    @classmethod
    def validate_unique_nodes(cls, v: list[NodeDefinition]) -> list[NodeDefinition]:
        """Validate node names and hosts are not repeated."""
        names = [node.name for node in v]
        if len(names) != len(set(names)):
            raise ValueError("node names must be unique within a cluster")
        hosts = [node.host for node in v]
        if len(hosts) != len(set(hosts)):
            raise ValueError("a host can back only one node")
        return v

    @classmethod
    def load(cls, path: str) -> "ClusterDefinition":
        """Load a cluster definition from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    def save(self, path: str) -> None:
        """Save the definition to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)
