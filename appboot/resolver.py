"""
ProgramResolver - decides how the user program is retrieved.

Script jobs skip all artifact validation. Everything else goes through the
artifact locator, which enforces that at most one archive is configured.
"""

import logging
import os
from typing import TYPE_CHECKING, Mapping, Optional, Sequence

from appboot.application import ApplicationConfiguration
from appboot.artifacts import locate_user_artifact
from appboot.environment import get_user_lib_dir, system_classpath_entries
from appboot.errors import ArtifactCardinalityError, ConfigError, PackagingError
from appboot.program import ArtifactMode, PackagedProgram, ProgramRetrievalStrategy, ScriptMode, is_script_job

if TYPE_CHECKING:
    from appboot.config import Configuration

logger = logging.getLogger(__name__)


class ProgramResolver:
    """
    Builds the retrieval strategy for the user program.

    Usage:
        resolver = ProgramResolver(os.environ)
        strategy = resolver.resolve(configuration, ["--input", "x"], "org.example.Main")
        program = strategy.get_packaged_program()
    """

    def __init__(self, environment: Optional[Mapping[str, str]] = None):
        self.environment = os.environ if environment is None else environment

    def resolve(
        self,
        configuration: "Configuration",
        program_arguments: Sequence[str],
        entry_class_name: Optional[str],
    ) -> ProgramRetrievalStrategy:
        """
        Resolve the retrieval strategy.

        Args:
            configuration: Assembled bootstrap configuration
            program_arguments: Arguments for the user program
            entry_class_name: Configured entry class, if any

        Returns:
            ScriptMode for script jobs, ArtifactMode otherwise

        Raises:
            PackagingError: If the library directory or artifact set is invalid
        """
        try:
            library_directory = get_user_lib_dir(configuration, self.environment)
        except ConfigError as e:
            raise PackagingError(str(e)) from e

        arguments = tuple(program_arguments or ())

        # No artifact validation for script jobs
        if is_script_job(entry_class_name, arguments, configuration):
            logger.info(
                "Resolved script job",
                extra={"event": "program_resolved", "metadata": {"mode": "script"}},
            )
            return ScriptMode(
                library_directory=library_directory,
                entry_class_name=entry_class_name,
                program_arguments=arguments,
                configuration=configuration,
            )

        try:
            artifact_file = locate_user_artifact(library_directory, configuration)
        except ArtifactCardinalityError as e:
            raise PackagingError(f"Invalid job artifact configuration: {e}") from e

        logger.info(
            f"Resolved artifact job (artifact: {artifact_file or 'none, using user classpath'})",
            extra={"event": "program_resolved", "metadata": {"mode": "artifact"}},
        )
        return ArtifactMode(
            library_directory=library_directory,
            artifact_file=artifact_file,
            entry_class_name=entry_class_name,
            program_arguments=arguments,
            configuration=configuration,
            system_classpath=tuple(system_classpath_entries(self.environment)),
        )


def get_packaged_program(
    configuration: "Configuration",
    environment: Optional[Mapping[str, str]] = None,
) -> PackagedProgram:
    """
    Resolve and build the user program from the configuration.

    Raises:
        PackagingError: If the program cannot be retrieved
    """
    application = ApplicationConfiguration.from_configuration(configuration)
    strategy = ProgramResolver(environment).resolve(
        configuration,
        application.program_arguments,
        application.application_class_name,
    )
    return strategy.get_packaged_program()
