"""
BPMN Context CLI Interface

Command-line tool to flatten a dumped moddle context into a serialized
context and to inspect serialized contexts.
"""

import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from bpmn_context.context import ContextApi, SerializerConfig, map_moddle_context, resolve_types
from bpmn_context.core.observability import LogLevel, ObservabilityManager
from bpmn_context.errors import ContextError
from bpmn_context.models.context import MappedContext
from bpmn_context.stages.type_resolution import TypeResolver

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """BPMN Context CLI - flatten and inspect BPMN document contexts."""
    pass


@cli.command()
@click.argument("moddle_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Write the serialized context to this file instead of stdout",
)
@click.option(
    "--types",
    "types_ref",
    default=None,
    help="Behaviour types to resolve against, as module or module:attribute",
)
@click.option("--indent", type=int, default=None, help="JSON indentation")
@click.option("--verbose/--quiet", default=False, help="Verbose logging output")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def flatten(
    moddle_file: str,
    output: Optional[str],
    types_ref: Optional[str],
    indent: Optional[int],
    verbose: bool,
    json_logs: bool,
) -> None:
    """
    Flatten a JSON dump of a moddle context into a serialized context.

    \b
    Examples:
        bpmn-context flatten moddle.json
        bpmn-context flatten moddle.json -o context.json --types my_engine.behaviours
    """
    config = _setup_observability(verbose, json_logs)

    try:
        data = json.loads(Path(moddle_file).read_text())
        mapped = map_moddle_context(data)
        if types_ref:
            resolve_types(mapped, TypeResolver(_load_types(types_ref)))
    except (ValueError, ContextError) as e:
        logger.exception("Flattening failed")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    serialized = ContextApi(mapped).serialize(indent=indent if indent is not None else config.indent)

    if output:
        Path(output).write_text(serialized)
        click.echo(f"Serialized context written to: {output}", err=True)
    else:
        click.echo(serialized)


@cli.command()
@click.argument("context_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "--types",
    "types_ref",
    default=None,
    help="Resolve behaviour types before summarizing, as module or module:attribute",
)
def summary(context_file: str, output_format: str, types_ref: Optional[str]) -> None:
    """
    Summarize a serialized context.

    \b
    Examples:
        bpmn-context summary context.json
        bpmn-context summary context.json --format json
    """
    try:
        mapped = MappedContext.model_validate_json(Path(context_file).read_text())
        if types_ref:
            resolve_types(mapped, TypeResolver(_load_types(types_ref)))
    except (ValueError, ContextError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    api = ContextApi(mapped)
    result = {
        "id": api.id,
        "name": api.name,
        "processes": len(api.get_processes()),
        "executable_processes": [p.id for p in api.get_executable_processes()],
        "activities": len(api.get_activities()),
        "sequence_flows": len(api.get_sequence_flows()),
        "message_flows": len(api.get_message_flows()),
        "data_objects": len(api.get_data_objects()),
        "scripts": len(api.get_scripts()),
    }

    if output_format == "json":
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(f"Definition: {result['id']} ({result['name'] or 'unnamed'})")
        click.echo(f"Processes: {result['processes']}")
        click.echo(f"Executable: {', '.join(result['executable_processes']) or '-'}")
        click.echo(f"Activities: {result['activities']}")
        click.echo(f"Sequence flows: {result['sequence_flows']}")
        click.echo(f"Message flows: {result['message_flows']}")
        click.echo(f"Data objects: {result['data_objects']}")
        click.echo(f"Scripts: {result['scripts']}")


@cli.command()
def info() -> None:
    """Show version and extension points."""
    from bpmn_context import __version__

    info_dict = {
        "name": "BPMN Context",
        "version": __version__,
        "description": "Flatten parsed BPMN documents into a queryable context model",
        "entity_lists": [
            "processes",
            "activities",
            "data_objects",
            "sequence_flows",
            "message_flows",
            "scripts",
        ],
        "hooks": {
            "type_resolver_extender": True,
            "extend_callback": True,
        },
    }

    click.echo(json.dumps(info_dict, indent=2))


# ==================
# Helper Functions
# ==================


def _setup_observability(verbose: bool, json_logs: bool) -> SerializerConfig:
    config = SerializerConfig.from_env()
    if verbose:
        config.log_level = LogLevel.DEBUG.value
    if json_logs:
        config.json_logs = True

    ObservabilityManager.initialize(config.observability_config(service_name="bpmn-context-cli"))
    return config


def _load_types(types_ref: str) -> Any:
    """Import a behaviour types table given as ``module`` or ``module:attribute``."""
    module_name, _, attribute = types_ref.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import {module_name}: {e}", param_hint="--types")

    if not attribute:
        return module

    try:
        return getattr(module, attribute)
    except AttributeError:
        raise click.BadParameter(
            f"{module_name} has no attribute {attribute}", param_hint="--types"
        )


if __name__ == "__main__":
    cli()
