"""Command line parsing for -D dynamic configuration parameters."""

from typing import Dict, Sequence

import click

from appboot.errors import MalformedArgumentsError


@click.command(context_settings={"help_option_names": []})
@click.option(
    "-D",
    "--dynamic-property",
    "dynamic_properties",
    multiple=True,
    metavar="<property=value>",
    help="Use value for given property.",
)
def dynamic_parameters_command(dynamic_properties):
    """Application cluster bootstrap."""


def _usage(prog_name: str) -> str:
    ctx = click.Context(dynamic_parameters_command, info_name=prog_name)
    return dynamic_parameters_command.get_help(ctx)


def _split_property(prop: str) -> tuple[str, str]:
    """Split key=value; a bare key is a boolean flag set to "true"."""
    key, sep, value = prop.partition("=")
    key = key.strip()
    if not key:
        raise click.BadParameter(
            f"'{prop}' is not of the form <property=value>",
            param_hint="'-D'",
        )
    if not sep:
        return key, "true"
    return key, value.strip()


def parse_dynamic_parameters(
    args: Sequence[str],
    prog_name: str = "appboot",
    echo_usage: bool = True,
) -> Dict[str, str]:
    """
    Parse -D key=value arguments into a configuration layer.

    On malformed input the usage is printed to stderr.

    Returns:
        Ordered key/value mapping; repeated keys keep the last value

    Raises:
        MalformedArgumentsError: With the parser's exit code and usage text
    """
    try:
        ctx = dynamic_parameters_command.make_context(prog_name, list(args))
        parameters: Dict[str, str] = {}
        for prop in ctx.params["dynamic_properties"]:
            key, value = _split_property(prop)
            parameters[key] = value
        return parameters
    except click.ClickException as e:
        usage = _usage(prog_name)
        if echo_usage:
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo(usage, err=True)
        raise MalformedArgumentsError(
            f"Could not parse command line arguments: {e.format_message()}",
            exit_code=e.exit_code,
            usage=usage,
        ) from e
