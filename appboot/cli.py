"""
CLI entry point for appboot.

Started by YARN as the first process of the application master container:

    appboot -D pipeline.jars=hdfs:///apps/app.jar -D $internal.application.main=org.example.Main

The only option read here is ``--version``, which prints the version and
exits before any bootstrap stage runs. All other arguments are handed to
the bootstrap sequencer unchanged; the process exits with the code of the
bootstrap result.
"""

import os

import click

from appboot import __version__
from appboot.bootstrap import BootstrapSequencer
from appboot.entrypoint import YarnResourceManagerFactory
from appboot.utils import logging_settings, setup_logging


@click.command(
    context_settings={"ignore_unknown_options": True, "help_option_names": []},
)
@click.version_option(version=__version__, prog_name="appboot")
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
def main(arguments):
    """Bootstrap a single-application cluster inside a YARN container."""
    setup_logging(**logging_settings(os.environ))

    sequencer = BootstrapSequencer(YarnResourceManagerFactory.get_instance())
    result = sequencer.run(list(arguments), os.environ)
    raise SystemExit(result.exit_code)


if __name__ == "__main__":
    main()
