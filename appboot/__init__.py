"""
appboot - Application cluster bootstrap for YARN containers

Validates the container environment, resolves the user program, applies
the job configuration and hands off to the cluster lifecycle.
"""

__version__ = "0.1.0"


__all__ = ["Configuration", "load_configuration", "BootstrapSequencer", "BootstrapResult"]

from .config import Configuration, load_configuration
from .bootstrap import BootstrapSequencer, BootstrapResult
