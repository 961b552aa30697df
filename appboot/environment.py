"""
Container environment: variable names, diagnostics and directory discovery.
"""

import getpass
import logging
import os
import platform
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional, Sequence

from appboot import __version__, options
from appboot.errors import ConfigError, InvalidEnvironmentError

if TYPE_CHECKING:
    from appboot.config import Configuration

# YARN container environment
ENV_PWD = "PWD"
ENV_NM_HOST = "NM_HOST"
ENV_LOCAL_DIRS = "LOCAL_DIRS"
ENV_LOG_DIRS = "LOG_DIRS"
ENV_HADOOP_USER_NAME = "HADOOP_USER_NAME"
ENV_KEYTAB_PATH = "_KEYTAB_PATH"
ENV_KEYTAB_PRINCIPAL = "_KEYTAB_PRINCIPAL"
ENV_CLASSPATH = "CLASSPATH"

# Distribution layout
ENV_LIB_DIR = "APPBOOT_LIB_DIR"
ENV_JAVA_HOME = "JAVA_HOME"
USER_LIB_DIRECTORY = "usrlib"

USER_JAR_INCLUSION_VALUES = ("DISABLED", "FIRST", "LAST", "ORDER")

SENSITIVE_KEYS = (
    "password",
    "secret",
    "apikey",
    "api-key",
    "token",
    "auth-params",
    "service-key",
    "basic-auth",
    "jaas.config",
)
HIDDEN_CONTENT = "******"


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def mask_arguments(args: Sequence[str]) -> list[str]:
    """Hide values of sensitive key=value arguments."""
    masked = []
    for arg in args:
        key, sep, _ = arg.partition("=")
        if sep and is_sensitive(key):
            masked.append(f"{key}={HIDDEN_CONTENT}")
        else:
            masked.append(arg)
    return masked


def get_working_directory(environment: Mapping[str, str]) -> Path:
    """
    Read the mandatory working directory from the environment.

    Raises:
        InvalidEnvironmentError: If PWD is not set
    """
    working_directory = environment.get(ENV_PWD)
    if working_directory is None:
        raise InvalidEnvironmentError(f"Working directory variable ({ENV_PWD}) not set")
    return Path(working_directory)


def log_environment_info(logger: logging.Logger, component: str, args: Sequence[str]) -> None:
    """Log version, interpreter and process details at startup."""
    separator = "-" * 80
    logger.info(separator)
    logger.info(f" Starting {component} (Version: {__version__})")
    logger.info(f" OS current user: {getpass.getuser()}")
    logger.info(
        f" Python: {platform.python_implementation()} {platform.python_version()} "
        f"({sys.executable})"
    )
    logger.info(f" Platform: {platform.platform()}")
    logger.info(f" PID: {os.getpid()}")
    logger.info(f" Working directory: {os.getcwd()}")
    if args:
        logger.info(" Program Arguments:")
        for arg in mask_arguments(args):
            logger.info(f"    {arg}")
    else:
        logger.info(" Program Arguments: (none)")
    logger.info(" Search path:")
    for entry in sys.path:
        logger.info(f"    {entry}")
    logger.info(separator)


def log_yarn_environment_information(environment: Mapping[str, str], logger: logging.Logger) -> None:
    """
    Log which user the container runs as and which user submitted it.

    Raises:
        InvalidEnvironmentError: If the YARN client user name is not set
    """
    client_user = environment.get(ENV_HADOOP_USER_NAME)
    if client_user is None:
        raise InvalidEnvironmentError(
            f"YARN client user name environment variable {ENV_HADOOP_USER_NAME} not set"
        )
    logger.info(
        f"YARN daemon is running as: {getpass.getuser()} Yarn client user obtainer: {client_user}"
    )


def try_find_user_lib_directory(environment: Mapping[str, str]) -> Optional[Path]:
    """Find the usrlib directory next to the distribution lib directory."""
    lib_dir = environment.get(ENV_LIB_DIR)
    if not lib_dir:
        return None
    user_lib = Path(lib_dir).parent / USER_LIB_DIRECTORY
    return user_lib if user_lib.is_dir() else None


def get_user_lib_dir(configuration: "Configuration", environment: Mapping[str, str]) -> Optional[Path]:
    """
    Directory holding user artifacts, honoring the user-jar inclusion policy.

    Only DISABLED keeps user archives off the system classpath, so only then
    is usrlib used as the user library directory.

    Raises:
        ConfigError: If the policy value is unknown, or DISABLED without a usrlib directory
    """
    inclusion = str(configuration.get(options.CLASSPATH_INCLUDE_USER_JAR)).upper()
    if inclusion not in USER_JAR_INCLUSION_VALUES:
        raise ConfigError(
            f"Invalid value for {options.CLASSPATH_INCLUDE_USER_JAR.key}: {inclusion}. "
            f"Allowed: {', '.join(USER_JAR_INCLUSION_VALUES)}"
        )

    user_lib = try_find_user_lib_directory(environment)
    if inclusion == "DISABLED" and user_lib is None:
        raise ConfigError(
            f"The {options.CLASSPATH_INCLUDE_USER_JAR.key} is set to DISABLED. "
            f"But the {USER_LIB_DIRECTORY} directory does not exist."
        )
    return user_lib if inclusion == "DISABLED" else None


def system_classpath_entries(environment: Mapping[str, str]) -> list[str]:
    """Entries of the container CLASSPATH, in order."""
    classpath = environment.get(ENV_CLASSPATH, "")
    return [entry.strip() for entry in classpath.split(os.pathsep) if entry.strip()]
