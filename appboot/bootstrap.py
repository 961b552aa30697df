"""BootstrapSequencer - staged startup of an application cluster container.

The sequence runs once per process:
1. Log environment diagnostics (best-effort)
2. Install signal handlers and the shutdown safeguard
3. Read the working directory from PWD
4. Parse -D dynamic parameters
5. Assemble the configuration
6. Resolve the packaged program
7. Apply the application configuration
8. Hand the entrypoint to the cluster lifecycle (blocks)

Every stage either produces its value or a fatal BootstrapResult. The first
fatal result ends the sequence; the caller turns it into the process exit
status. No stage is retried and nothing after a fatal stage runs.

Usage:
    from appboot.bootstrap import BootstrapSequencer
    from appboot.entrypoint import YarnResourceManagerFactory

    result = BootstrapSequencer(YarnResourceManagerFactory.get_instance()).run(sys.argv[1:])
    sys.exit(result.exit_code)
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from appboot.application import configure_execution
from appboot.config import load_configuration
from appboot.entrypoint import ApplicationClusterEntrypoint, ResourceManagerFactory, YarnResourceManagerFactory
from appboot.environment import (
    get_working_directory,
    log_environment_info,
    log_yarn_environment_information,
)
from appboot.errors import InvalidEnvironmentError, MalformedArgumentsError
from appboot.lifecycle import create_lifecycle, run_cluster_entrypoint
from appboot.params import parse_dynamic_parameters
from appboot.process import install_shutdown_safeguard, register_signal_handlers
from appboot.resolver import get_packaged_program

logger = logging.getLogger(__name__)

STAGE_ENVIRONMENT = "environment"
STAGE_ARGUMENTS = "arguments"
STAGE_CONFIGURATION = "configuration"
STAGE_PROGRAM = "program"
STAGE_APPLY = "apply"
STAGE_CLUSTER = "cluster"


@dataclass
class BootstrapResult:
    """Outcome of a bootstrap run.

    On success ``stage`` is "cluster" and ``exit_code`` is the cluster's
    termination code. On failure ``stage`` names the fatal stage.
    """

    stage: str
    exit_code: int
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "stage": self.stage,
            "exit_code": self.exit_code,
            "succeeded": self.succeeded,
            "error": str(self.error) if self.error is not None else None,
        }


class BootstrapSequencer:
    """Runs the bootstrap stages and hands off to the cluster lifecycle."""

    def __init__(
        self,
        resource_manager_factory: Optional[ResourceManagerFactory] = None,
        lifecycle_factory: Callable[..., Any] = create_lifecycle,
        configuration_loader: Callable[..., Any] = load_configuration,
        program_loader: Callable[..., Any] = get_packaged_program,
        prog_name: str = "appboot",
    ):
        self.resource_manager_factory = resource_manager_factory or YarnResourceManagerFactory.get_instance()
        self.lifecycle_factory = lifecycle_factory
        self.configuration_loader = configuration_loader
        self.program_loader = program_loader
        self.prog_name = prog_name

    @property
    def component(self) -> str:
        return f"{self.resource_manager_factory.scheduler.capitalize()}ApplicationClusterEntrypoint"

    def _fatal(self, stage: str, error: BaseException, message: str) -> BootstrapResult:
        exit_code = getattr(error, "exit_code", 1)
        logger.error(
            message,
            exc_info=error,
            extra={
                "stage": stage,
                "event": "bootstrap_failed",
                "metadata": {"exit_code": exit_code, "error": str(error)},
            },
        )
        return BootstrapResult(stage=stage, exit_code=exit_code, error=error)

    def _log_environment(self, arguments: Sequence[str]) -> None:
        try:
            log_environment_info(logger, self.component, arguments)
        except Exception as e:
            logger.warning(f"Could not log environment information: {e}")

    def _log_yarn_environment(self, environment: Mapping[str, str]) -> None:
        try:
            log_yarn_environment_information(environment, logger)
        except Exception as e:
            logger.warning(f"Could not log YARN environment information: {e}")

    def run(
        self,
        arguments: Sequence[str],
        environment: Optional[Mapping[str, str]] = None,
    ) -> BootstrapResult:
        """
        Run the bootstrap sequence.

        Args:
            arguments: Command line arguments (dynamic parameters)
            environment: Process environment. Defaults to os.environ

        Returns:
            BootstrapResult; on success the cluster has already terminated
        """
        if environment is None:
            environment = os.environ
        arguments = list(arguments)

        self._log_environment(arguments)
        register_signal_handlers(logger)
        install_shutdown_safeguard(logger)

        try:
            working_directory = get_working_directory(environment)
        except InvalidEnvironmentError as e:
            return self._fatal(STAGE_ENVIRONMENT, e, str(e))

        self._log_yarn_environment(environment)

        try:
            dynamic_parameters = parse_dynamic_parameters(arguments, prog_name=self.prog_name)
        except MalformedArgumentsError as e:
            return self._fatal(STAGE_ARGUMENTS, e, "Could not parse command line arguments.")

        try:
            configuration = self.configuration_loader(working_directory, dynamic_parameters, environment)
        except Exception as e:
            return self._fatal(STAGE_CONFIGURATION, e, "Could not load the configuration.")

        try:
            program = self.program_loader(configuration, environment)
        except Exception as e:
            return self._fatal(STAGE_PROGRAM, e, "Could not create application program.")

        try:
            configuration = configure_execution(configuration, program)
        except Exception as e:
            return self._fatal(STAGE_APPLY, e, "Could not apply application configuration.")

        entrypoint = ApplicationClusterEntrypoint(configuration, program, self.resource_manager_factory)
        try:
            lifecycle = self.lifecycle_factory(configuration, environment)
        except Exception as e:
            return self._fatal(STAGE_CLUSTER, e, "Could not create the cluster lifecycle.")

        logger.info(
            f"Starting {entrypoint.name} for {program.entry_point_class}",
            extra={"stage": STAGE_CLUSTER, "event": "bootstrap_completed"},
        )
        exit_code = run_cluster_entrypoint(entrypoint, lifecycle)
        return BootstrapResult(stage=STAGE_CLUSTER, exit_code=exit_code)
