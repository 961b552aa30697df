"""
Application configuration: the job's entry class and arguments, and the
job-specific values applied to the runtime configuration before handoff.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from appboot import options
from appboot.errors import ConfigurationApplicationError

if TYPE_CHECKING:
    from appboot.config import Configuration
    from appboot.program import PackagedProgram

EMBEDDED_EXECUTOR = "embedded"


@dataclass(frozen=True)
class ApplicationConfiguration:
    """Read-only view of the program arguments and entry class."""
    program_arguments: tuple[str, ...] = ()
    application_class_name: Optional[str] = None

    @classmethod
    def from_configuration(cls, configuration: "Configuration") -> "ApplicationConfiguration":
        return cls(
            program_arguments=tuple(configuration.get(options.APPLICATION_ARGS) or []),
            application_class_name=configuration.get_optional(options.APPLICATION_MAIN_CLASS),
        )


def configure_execution(configuration: "Configuration", program: "PackagedProgram") -> "Configuration":
    """
    Apply job-specific values to the runtime configuration.

    Sets the embedded executor target and replaces pipeline.jars and
    pipeline.classpaths with what the resolved program actually uses.

    Returns:
        A new Configuration; the input is left untouched

    Raises:
        ConfigurationApplicationError: If the values cannot be derived or applied
    """
    try:
        jars = program.get_job_artifact_and_dependencies()
        classpaths = list(program.user_classpaths)
        return configuration.with_values({
            options.DEPLOYMENT_TARGET: EMBEDDED_EXECUTOR,
            options.PIPELINE_JARS: jars,
            options.PIPELINE_CLASSPATHS: classpaths,
        })
    except ConfigurationApplicationError:
        raise
    except Exception as e:
        raise ConfigurationApplicationError(f"Could not apply application configuration: {e}") from e
