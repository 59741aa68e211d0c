"""Persisted models for the cluster aggregate."""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cluster_lifecycle.constants import DEFAULT_CLUSTER_SOURCE, ClusterPhase
from cluster_lifecycle.models.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from cluster_lifecycle.models.node import ClusterNode


class ClusterSpec(Base, IdMixin, TimestampMixin):
    """Cluster configuration.

    Every field defaults to an empty string, meaning the provisioning
    playbooks fall back to their own default.
    """

    __tablename__ = "ko_cluster_spec"

    network_type: Mapped[str] = mapped_column(String, default="")
    runtime_type: Mapped[str] = mapped_column(String, default="")
    docker_storage_dir: Mapped[str] = mapped_column(String, default="")
    containerd_storage_dir: Mapped[str] = mapped_column(String, default="")
    lb_kube_apiserver_ip: Mapped[str] = mapped_column(String, default="")
    kube_pod_subnet: Mapped[str] = mapped_column(String, default="")
    kube_service_subnet: Mapped[str] = mapped_column(String, default="")


class ClusterStatus(Base, IdMixin, TimestampMixin):
    """Current lifecycle state of a cluster."""

    __tablename__ = "ko_cluster_status"

    phase: Mapped[str] = mapped_column(String, default=ClusterPhase.WAITING.value)
    message: Mapped[str] = mapped_column(String, default="")
    pre_phase: Mapped[str] = mapped_column(String, default="")


class ClusterSecret(Base, IdMixin, TimestampMixin):
    """Credential material generated for a cluster."""

    __tablename__ = "ko_cluster_secret"

    kubeadm_token: Mapped[str] = mapped_column(String, default="")
    kubernetes_token: Mapped[str] = mapped_column(String, default="")


class ClusterTool(Base, IdMixin, TimestampMixin):
    """Companion service instantiated for a cluster from the tool catalog."""

    __tablename__ = "ko_cluster_tool"

    cluster_id: Mapped[str] = mapped_column(String(36), ForeignKey("ko_cluster.id"), index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    version: Mapped[str] = mapped_column(String, default="")
    describe: Mapped[str] = mapped_column(String, default="")
    status: Mapped[str] = mapped_column(String, default=ClusterPhase.WAITING.value)
    logo: Mapped[str] = mapped_column(String, default="")
    sequence: Mapped[int] = mapped_column(Integer, default=0)


class Cluster(Base, IdMixin, TimestampMixin):
    """Aggregate root.

    Specification, status and secret are referenced through their id columns
    and written explicitly by the lifecycle manager, never through cascades.
    """

    __tablename__ = "ko_cluster"

    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    source: Mapped[str] = mapped_column(String, default=DEFAULT_CLUSTER_SOURCE)
    spec_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("ko_cluster_spec.id"))
    status_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("ko_cluster_status.id"))
    secret_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("ko_cluster_secret.id"))

    spec: Mapped[ClusterSpec | None] = relationship(cascade="")
    status: Mapped[ClusterStatus | None] = relationship(cascade="")
    secret: Mapped[ClusterSecret | None] = relationship(cascade="")
    # Children are deleted explicitly; the ORM must not null out their cluster_id
    nodes: Mapped[list["ClusterNode"]] = relationship(
        cascade="", passive_deletes="all", order_by="ClusterNode.sequence"
    )
    tools: Mapped[list[ClusterTool]] = relationship(
        cascade="", passive_deletes="all", order_by=ClusterTool.sequence
    )

    def __repr__(self) -> str:
        return f"Cluster(id={self.id!r}, name={self.name!r})"
