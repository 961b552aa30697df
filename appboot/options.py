"""
Configuration options consumed by the bootstrap.

Each option knows its key, value type and default. Values arrive as strings
from the command line and environment, or as YAML scalars and lists from
the config file; ``ConfigOption.convert`` normalizes both.
"""

from dataclasses import dataclass, field
from typing import Any

LIST_DELIMITER = ";"


@dataclass(frozen=True)
class ConfigOption:
    """A typed configuration key."""

    key: str
    type: type = str
    default: Any = None
    description: str = ""
    deprecated_keys: tuple[str, ...] = field(default_factory=tuple)

    def convert(self, value: Any) -> Any:
        """Convert a raw value to this option's type.

        Raises:
            ValueError: If the value cannot be converted
        """
        if value is None:
            return None
        if self.type is list:
            if isinstance(value, (list, tuple)):
                return [str(v) for v in value]
            return [v.strip() for v in str(value).split(LIST_DELIMITER) if v.strip()]
        if self.type is int:
            if isinstance(value, bool):
                raise ValueError(f"Option '{self.key}' expects an integer, got {value!r}")
            return int(value)
        if isinstance(value, (list, tuple)):
            return LIST_DELIMITER.join(str(v) for v in value)
        return str(value)

    def all_keys(self) -> tuple[str, ...]:
        return (self.key,) + self.deprecated_keys


def encode_value(value: Any) -> Any:
    """Encode a value for storage in a Configuration."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


# =============================================================================
# Pipeline / application
# =============================================================================

PIPELINE_JARS = ConfigOption(
    "pipeline.jars",
    type=list,
    description="Job artifact URIs. At most one is allowed in application mode.",
)

PIPELINE_CLASSPATHS = ConfigOption(
    "pipeline.classpaths",
    type=list,
    description="Additional classpath URIs shipped with the job.",
)

APPLICATION_ARGS = ConfigOption(
    "$internal.application.program-args",
    type=list,
    default=[],
    description="Arguments passed to the user program.",
)

APPLICATION_MAIN_CLASS = ConfigOption(
    "$internal.application.main",
    description="Entry class of the user program.",
)

DEPLOYMENT_TARGET = ConfigOption(
    "execution.target",
    description="Executor the user program submits its jobs to.",
)

# =============================================================================
# YARN
# =============================================================================

APPLICATION_MASTER_PORT = ConfigOption(
    "yarn.application-master.port",
    default="0",
    description="RPC port (or port range) of the application master.",
)

CLASSPATH_INCLUDE_USER_JAR = ConfigOption(
    "yarn.classpath.include-user-jar",
    default="ORDER",
    description="DISABLED, FIRST, LAST or ORDER. Only DISABLED uses the usrlib directory.",
    deprecated_keys=("yarn.per-job-cluster.include-user-jar",),
)

# =============================================================================
# Cluster addresses
# =============================================================================

JOBMANAGER_ADDRESS = ConfigOption("jobmanager.rpc.address")
REST_ADDRESS = ConfigOption("rest.address")
REST_BIND_ADDRESS = ConfigOption("rest.bind-address")
REST_BIND_PORT = ConfigOption("rest.bind-port", default="8081")

IO_TMP_DIRS = ConfigOption("io.tmp.dirs")

KERBEROS_LOGIN_KEYTAB = ConfigOption("security.kerberos.login.keytab")
KERBEROS_LOGIN_PRINCIPAL = ConfigOption("security.kerberos.login.principal")

# =============================================================================
# Script jobs
# =============================================================================

SCRIPT_ENTRY_CLASSES = ConfigOption(
    "appboot.script.entry-classes",
    type=list,
    default=[],
    description="Extra entry class names that mark a job as script-based.",
)

PYTHON_EXECUTABLE = ConfigOption(
    "python.executable",
    description="Interpreter used to launch script-based jobs.",
)

# =============================================================================
# Cluster lifecycle
# =============================================================================

CLUSTER_LIFECYCLE = ConfigOption(
    "appboot.cluster.lifecycle",
    description="Factory for the cluster lifecycle, as 'module:function'.",
)

