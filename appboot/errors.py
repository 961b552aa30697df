"""
Error classes for appboot bootstrap.

These error types classify failures at the bootstrap stage boundaries:
- InvalidEnvironmentError: required container environment is missing
- MalformedArgumentsError: dynamic parameters could not be parsed
- ConfigError: the configuration could not be assembled
- PackagingError: the user program could not be resolved or built
- ConfigurationApplicationError: job configuration could not be applied

Every bootstrap failure is fatal. Nothing here is retried; the sequencer
maps the error to an exit code and stops.
"""


class AppbootError(Exception):
    """Base exception for appboot."""

    exit_code = 1


class InvalidEnvironmentError(AppbootError):
    """
    A mandatory environment variable is not set.

    Raised before any configuration is assembled.
    """
    pass


class MalformedArgumentsError(AppbootError):
    """
    Dynamic parameters on the command line failed to parse.

    Carries the exit code chosen by the parameter parser and the usage
    text that was printed.
    """

    def __init__(self, message: str, exit_code: int = 2, usage: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.usage = usage


class ConfigError(AppbootError):
    """Configuration loading or validation error."""
    pass


class PackagingError(AppbootError):
    """
    The packaged program could not be retrieved.

    Examples:
    - Ambiguous artifact set (more than one jar configured)
    - Archive missing or unreadable
    - No entry class configured or declared in the manifest
    - Entry class not present in the archive or user classpath
    """
    pass


class ConfigurationApplicationError(AppbootError):
    """Applying the application configuration to the runtime configuration failed."""
    pass


class ArtifactCardinalityError(ValueError):
    """More than one artifact file resolved from the configured references."""
    pass
