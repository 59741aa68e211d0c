"""Persisted models for cluster members and the hosts backing them."""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cluster_lifecycle.models.base import Base, IdMixin, TimestampMixin


class Host(Base, IdMixin, TimestampMixin):
    """A machine that can be bound to at most one cluster.

    ``cluster_id`` is an identity field only. It is written by the lifecycle
    manager when the host's node joins a cluster and cleared when the
    cluster is deleted.
    """

    __tablename__ = "ko_host"

    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    ip: Mapped[str] = mapped_column(String, nullable=False)
    port: Mapped[int] = mapped_column(Integer, default=22)
    user: Mapped[str] = mapped_column(String, default="root")
    password: Mapped[str] = mapped_column(String, default="")
    private_key_file: Mapped[str] = mapped_column(String, default="")
    cluster_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"Host(name={self.name!r}, ip={self.ip!r}, cluster_id={self.cluster_id!r})"


class ClusterNode(Base, IdMixin, TimestampMixin):
    """Cluster member backed by a host."""

    __tablename__ = "ko_cluster_node"

    name: Mapped[str] = mapped_column(String, nullable=False)
    cluster_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("ko_cluster.id"), index=True
    )
    host_id: Mapped[str] = mapped_column(String(36), ForeignKey("ko_host.id"), nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)  # master or worker
    status: Mapped[str] = mapped_column(String, default="")
    # Position within the cluster, keeps the inventory in creation order
    sequence: Mapped[int] = mapped_column(Integer, default=0)

    host: Mapped[Host] = relationship(cascade="")

    def __repr__(self) -> str:
        return f"ClusterNode(name={self.name!r}, role={self.role!r}, status={self.status!r})"
