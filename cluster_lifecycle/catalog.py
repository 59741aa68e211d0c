"""Companion tools installed alongside every cluster."""

from typing import NamedTuple

from cluster_lifecycle.constants import ClusterPhase
from cluster_lifecycle.models.cluster import ClusterTool


class ToolEntry(NamedTuple):
    name: str
    version: str
    describe: str
    status: str
    logo: str


TOOL_CATALOG: tuple[ToolEntry, ...] = (
    ToolEntry("prometheus", "v1.0.0", "", ClusterPhase.WAITING.value, "prometheus.png"),
    ToolEntry("dashboard", "v1.0.0", "", ClusterPhase.WAITING.value, "kubernetes.png"),
    ToolEntry("chartmuseum", "v1.0.0", "", ClusterPhase.WAITING.value, "chartmuseum.png"),
    ToolEntry("registry", "v1.0.0", "", ClusterPhase.WAITING.value, "registry.png"),
)


def prepare_tools(cluster_id: str | None = None) -> list[ClusterTool]:
    """Instantiate a fresh tool record for every catalog entry.

    Args:
        cluster_id: Owning cluster, if already known

    Returns:
        New, unsaved ClusterTool objects in catalog order
    """
    return [
        ClusterTool(cluster_id=cluster_id, sequence=position, **entry._asdict())
        for position, entry in enumerate(TOOL_CATALOG)
    ]
