"""Inventory structures handed to the provisioning engine."""

from pydantic import BaseModel, Field


class InventoryHost(BaseModel):
    """Connection details for one inventory host."""

    name: str
    ip: str
    port: int = 22
    user: str = "root"
    password: str = ""
    private_key_file: str = ""
    vars: dict[str, str] = Field(default_factory=dict)

    def to_ansible_vars(self) -> dict:
        """Convert to Ansible host variables."""
        result = {
            "ansible_host": self.ip,
            "ansible_port": self.port,
            "ansible_user": self.user,
        }
        if self.password:
            result["ansible_ssh_pass"] = self.password
        if self.private_key_file:
            result["ansible_ssh_private_key_file"] = self.private_key_file
        result.update(self.vars)
        return result


class InventoryGroup(BaseModel):
    """Named group of hosts with the groups it depends on."""

    name: str
    hosts: list[str] = Field(default_factory=list)
    children: list[str] = Field(default_factory=list)
    vars: dict[str, str] = Field(default_factory=dict)


class Inventory(BaseModel):
    """Hosts plus the ordered deployment groups built from a cluster."""

    hosts: list[InventoryHost] = Field(default_factory=list)
    groups: list[InventoryGroup] = Field(default_factory=list)

    def group(self, name: str) -> InventoryGroup:
        """Look up a group by name.

        Raises:
            KeyError: If the inventory has no group with that name
        """
        for group in self.groups:
            if group.name == name:
                return group
        raise KeyError(name)

    @property
    def group_names(self) -> list[str]:
        return [group.name for group in self.groups]
