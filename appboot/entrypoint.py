"""
Cluster entrypoint and the scheduler-specific resource-manager strategy.

The entrypoint binds the final configuration, the resolved program and the
resource-manager strategy. It is what the cluster lifecycle receives.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from appboot import options

if TYPE_CHECKING:
    from appboot.config import Configuration
    from appboot.program import PackagedProgram


class ResourceManagerFactory(ABC):
    """Scheduler-specific resource-manager strategy."""

    scheduler: str = ""

    @abstractmethod
    def get_rpc_port_range(self, configuration: "Configuration") -> str:
        """RPC port or port range the cluster binds to on this scheduler."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(scheduler={self.scheduler})"


class YarnResourceManagerFactory(ResourceManagerFactory):
    """Resource-manager strategy for YARN containers."""

    scheduler = "yarn"
    _instance: Optional["YarnResourceManagerFactory"] = None

    @classmethod
    def get_instance(cls) -> "YarnResourceManagerFactory":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_rpc_port_range(self, configuration: "Configuration") -> str:
        return configuration.get(options.APPLICATION_MASTER_PORT)


class ApplicationClusterEntrypoint:
    """A single-application cluster ready to be started."""

    def __init__(
        self,
        configuration: "Configuration",
        program: "PackagedProgram",
        resource_manager_factory: ResourceManagerFactory,
    ):
        self.configuration = configuration
        self.program = program
        self.resource_manager_factory = resource_manager_factory

    def get_rpc_port_range(self, configuration: Optional["Configuration"] = None) -> str:
        return self.resource_manager_factory.get_rpc_port_range(
            configuration if configuration is not None else self.configuration
        )

    @property
    def name(self) -> str:
        scheduler = self.resource_manager_factory.scheduler.capitalize()
        return f"{scheduler}ApplicationClusterEntrypoint"

    def __repr__(self) -> str:
        return (
            f"ApplicationClusterEntrypoint(entry={self.program.entry_point_class}, "
            f"scheduler={self.resource_manager_factory.scheduler})"
        )
