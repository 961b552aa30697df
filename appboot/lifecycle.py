"""
Cluster lifecycle - what runs after the bootstrap hands off.

The lifecycle receives the fully built entrypoint, starts the cluster and
blocks until it terminates. The built-in ProcessClusterLifecycle launches
the resolved program as a child process; a custom lifecycle can be plugged
in with the appboot.cluster.lifecycle option ("module:function").
"""

import importlib
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional
from urllib.parse import urlparse

from appboot import options
from appboot.environment import ENV_JAVA_HOME

if TYPE_CHECKING:
    from appboot.config import Configuration
    from appboot.entrypoint import ApplicationClusterEntrypoint
    from appboot.program import PackagedProgram

logger = logging.getLogger(__name__)

STARTUP_FAILURE_RETURN_CODE = 1
RUNTIME_FAILURE_RETURN_CODE = 2


class ApplicationStatus(Enum):
    """Final status of the application and its process exit code."""

    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"
    UNKNOWN = "UNKNOWN"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    ApplicationStatus.SUCCEEDED: 0,
    ApplicationStatus.FAILED: 1443,
    ApplicationStatus.CANCELED: 0,
    ApplicationStatus.UNKNOWN: 1445,
}


class ClusterLifecycle(ABC):
    """Starts a cluster entrypoint and waits for it to terminate."""

    @abstractmethod
    def start(self, entrypoint: "ApplicationClusterEntrypoint") -> None:
        """
        Start the cluster.

        Raises:
            Exception: If the cluster cannot be started
        """
        pass

    @abstractmethod
    def wait_for_termination(self) -> ApplicationStatus:
        """Block until the cluster terminates and return its final status."""
        pass


def _local_paths(uris) -> list[str]:
    """Local filesystem paths of file: URIs; other URIs are skipped."""
    paths = []
    for uri in uris:
        parsed = urlparse(uri)
        if parsed.scheme in ("", "file"):
            paths.append(parsed.path or uri)
    return paths


def _script_arguments(arguments) -> list[str]:
    """Translate script job arguments into interpreter arguments."""
    translated: list[str] = []
    args = list(arguments)
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-py", "--python") and i + 1 < len(args):
            translated.append(args[i + 1])
            i += 2
        elif arg in ("-pym", "--pyModule") and i + 1 < len(args):
            translated.extend(["-m", args[i + 1]])
            i += 2
        else:
            translated.append(arg)
            i += 1
    return translated


def build_launch_command(
    program: "PackagedProgram",
    configuration: "Configuration",
    environment: Mapping[str, str],
) -> list[str]:
    """Command line that runs the packaged program."""
    if program.is_script:
        python = configuration.get_optional(options.PYTHON_EXECUTABLE) or sys.executable
        return [python] + _script_arguments(program.arguments)

    java_home = environment.get(ENV_JAVA_HOME)
    java = str(Path(java_home) / "bin" / "java") if java_home else "java"
    classpath = [str(program.job_artifact)] if program.job_artifact is not None else []
    classpath.extend(_local_paths(program.user_classpaths))
    return [java, "-cp", os.pathsep.join(classpath), program.entry_point_class] + list(program.arguments)


class ProcessClusterLifecycle(ClusterLifecycle):
    """Runs the packaged program as a child process of the bootstrap."""

    def __init__(
        self,
        environment: Optional[Mapping[str, str]] = None,
        popen: Callable[..., Any] = subprocess.Popen,
    ):
        self.environment = dict(os.environ if environment is None else environment)
        self._popen = popen
        self._process = None

    def _child_environment(self, program: "PackagedProgram") -> dict[str, str]:
        env = dict(self.environment)
        if program.is_script:
            paths = _local_paths(program.user_classpaths)
            if env.get("PYTHONPATH"):
                paths.append(env["PYTHONPATH"])
            if paths:
                env["PYTHONPATH"] = os.pathsep.join(paths)
        return env

    def start(self, entrypoint: "ApplicationClusterEntrypoint") -> None:
        program = entrypoint.program
        command = build_launch_command(program, entrypoint.configuration, self.environment)
        logger.info(
            f"Launching {program.entry_point_class}: {' '.join(command)}",
            extra={"event": "cluster_started", "metadata": {"rpc_port_range": entrypoint.get_rpc_port_range()}},
        )
        self._process = self._popen(command, env=self._child_environment(program))

    def wait_for_termination(self) -> ApplicationStatus:
        if self._process is None:
            raise RuntimeError("Cluster was not started")
        returncode = self._process.wait()
        if returncode == 0:
            return ApplicationStatus.SUCCEEDED
        if returncode < 0:
            # Killed by a signal
            return ApplicationStatus.CANCELED
        return ApplicationStatus.FAILED


def load_lifecycle_factory(factory_path: str) -> Callable[..., Any]:
    """Load a lifecycle factory by dotted path string.

    Args:
        factory_path: e.g. "mycluster.lifecycle:create_lifecycle"

    Returns:
        The callable factory

    Raises:
        ValueError: If the path is malformed
        ImportError: If module not found
        AttributeError: If function not found in module
        TypeError: If attribute is not callable
    """
    if ":" not in factory_path:
        raise ValueError(f"Factory path must be 'module:function', got: {factory_path}")

    module_path, func_name = factory_path.rsplit(":", 1)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ImportError(f"Cannot import lifecycle module '{module_path}': {e}") from e

    try:
        factory = getattr(module, func_name)
    except AttributeError as e:
        raise AttributeError(
            f"Lifecycle factory '{func_name}' not found in '{module_path}': {e}"
        ) from e

    if not callable(factory):
        raise TypeError(f"{factory_path} is not callable")

    return factory


def create_lifecycle(
    configuration: "Configuration",
    environment: Optional[Mapping[str, str]] = None,
) -> ClusterLifecycle:
    """Lifecycle named by appboot.cluster.lifecycle, or the process lifecycle."""
    factory_path = configuration.get_optional(options.CLUSTER_LIFECYCLE)
    if factory_path is None:
        return ProcessClusterLifecycle(environment)

    lifecycle = load_lifecycle_factory(factory_path)()
    if not isinstance(lifecycle, ClusterLifecycle):
        raise TypeError(f"{factory_path} did not return a ClusterLifecycle")
    return lifecycle


def run_cluster_entrypoint(entrypoint: "ApplicationClusterEntrypoint", lifecycle: ClusterLifecycle) -> int:
    """
    Start the cluster and block until it terminates.

    Returns:
        Process exit code for the final application status
    """
    name = entrypoint.name
    try:
        lifecycle.start(entrypoint)
    except Exception:
        logger.error(f"Could not start cluster entrypoint {name}.", exc_info=True)
        return STARTUP_FAILURE_RETURN_CODE

    try:
        status = lifecycle.wait_for_termination()
    except Exception:
        logger.error("Could not retrieve the termination status of the cluster.", exc_info=True)
        return RUNTIME_FAILURE_RETURN_CODE

    exit_code = status.exit_code
    logger.info(
        f"Terminating cluster entrypoint process {name} with exit code {exit_code}.",
        extra={"event": "cluster_terminated", "metadata": {"status": status.value}},
    )
    return exit_code
