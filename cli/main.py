#!/usr/bin/env python3
"""
Shared Coin Covenant - Command Line Interface

Build shared coin trees from a stakeholder file, inspect covenant leaves and
prepare the script-path data a stakeholder needs to withdraw.
"""

import sys
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

import click
import yaml

from cli import __version__
from cli.config import ConfigurationManager, ConfigurationError, OUTPUT_FORMATS
from crypto.exceptions import CryptoError
from scripts.encoding import script_to_asm
from scripts.exceptions import ScriptError
from scripts.output_constraint import extract_output_constraint
from scripts.taproot_tree import iter_leaves, verify_script_path
from sharedcoin.exceptions import SharedCoinError
from sharedcoin.stakeholder import Stakeholder, stakeholders_from_list, total_amount
from sharedcoin.tree import SharedCoinTreeBuilder


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.output_format: str = "table"
        self.verbose: int = 0
        self.config: Optional[ConfigurationManager] = None
        self.logger: Optional[logging.Logger] = None

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        self.logger = logging.getLogger('sharedcoin-cli')
        self.logger.setLevel(level)
        self.logger.handlers = [handler]

        # Library loggers follow the CLI verbosity
        for name in ('sharedcoin', 'scripts', 'crypto'):
            library_logger = logging.getLogger(name)
            library_logger.setLevel(level)
            library_logger.handlers = [handler]

    def load_config(self):
        """Load layered configuration."""
        self.config = ConfigurationManager(self.config_file)
        try:
            self.config.load()
        except ConfigurationError as e:
            raise click.ClickException(str(e))

        errors = self.config.validate()
        if errors:
            raise click.ClickException("Invalid configuration: " + "; ".join(errors))

    def builder(self) -> SharedCoinTreeBuilder:
        """Tree builder configured from settings."""
        return SharedCoinTreeBuilder(
            internal_pubkey=bytes.fromhex(self.config.get('taproot.internal_pubkey')),
            cache_enabled=self.config.get('tree.cache_enabled', True),
        )

    def output(self, data: Any):
        """Output data in the selected format."""
        if self.output_format == "json":
            click.echo(json.dumps(data, indent=2, default=str))
        elif self.output_format == "yaml":
            click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)
        else:
            self._output_table(data)

    def _output_table(self, data: Any):
        """Output data in table format."""
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, default=str)
                click.echo(f"{key:24} {value}")
        elif isinstance(data, list):
            for item in data:
                self._output_table(item)
                click.echo("-" * 40)
        else:
            click.echo(str(data))


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def load_stakeholders(path: str) -> List[Stakeholder]:
    """Read a JSON or YAML file holding a list of stakeholders."""
    file_path = Path(path)
    try:
        with open(file_path, 'r') as f:
            if file_path.suffix in ['.yml', '.yaml']:
                entries = yaml.safe_load(f)
            else:
                entries = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Failed to read stakeholders from {file_path}: {e}")

    if not isinstance(entries, list):
        raise click.ClickException("Stakeholder file must contain a list")
    try:
        return stakeholders_from_list(entries)
    except SharedCoinError as e:
        raise click.ClickException(str(e))


def parse_hex(value: str, name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise click.BadParameter(f"{name} must be hex", param_hint=name)


def describe_leaf(script: bytes) -> Dict[str, Any]:
    description = {"script": script.hex(), "asm": None, "change_output": None}
    try:
        description["asm"] = script_to_asm(script)
        constraint = extract_output_constraint(script)
    except ScriptError:
        # Stakeholder scripts are opaque to the tree; show them as raw hex
        return description
    if constraint is not None:
        description["change_output"] = constraint.to_dict()
    return description


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              help='Path to configuration file')
@click.option('--output-format', '-o',
              type=click.Choice(OUTPUT_FORMATS),
              default=None,
              help='Output format')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='sharedcoin')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], output_format: Optional[str], verbose: int):
    """
    Shared Coin Covenant Command Line Interface

    Build and inspect N-party shared coin Taproot trees on Elements.

    Examples:
        sharedcoin tree stakeholders.json
        sharedcoin decode <leaf script hex>
        sharedcoin locate stakeholders.json <plain script hex>
    """
    ctx.config_file = config_file
    ctx.load_config()

    ctx.output_format = output_format or ctx.config.get('cli.output_format')
    ctx.verbose = verbose or ctx.config.get('cli.verbose', 0)

    ctx.setup_logging()
    ctx.logger.debug(f"CLI initialized from {', '.join(ctx.config.get_sources())}")


@cli.command()
@click.argument('stakeholders_file', type=click.Path(exists=True, dir_okay=False))
@pass_context
def tree(ctx: CLIContext, stakeholders_file: str):
    """Build the shared coin tree of STAKEHOLDERS_FILE."""
    stakeholders = load_stakeholders(stakeholders_file)
    builder = ctx.builder()

    try:
        root = builder.build_tree(stakeholders)
        witness_program = builder.witness_program(stakeholders)
    except (SharedCoinError, CryptoError, ScriptError, ValueError) as e:
        raise click.ClickException(str(e))

    ctx.output({
        "stakeholders": len(stakeholders),
        "total_amount": total_amount(stakeholders),
        "internal_pubkey": builder.internal_pubkey.hex(),
        "merkle_root": root.hash.hex(),
        "witness_program": witness_program.hex(),
        "output_script": builder.output_script(stakeholders).hex(),
        "leaves": [describe_leaf(leaf.script) for leaf in iter_leaves(root)],
    })


@cli.command()
@click.argument('script_hex')
@pass_context
def decode(ctx: CLIContext, script_hex: str):
    """Show the output check embedded in SCRIPT_HEX, if any."""
    script = parse_hex(script_hex, 'SCRIPT_HEX')
    try:
        constraint = extract_output_constraint(script)
    except ScriptError as e:
        raise click.ClickException(str(e))

    if constraint is None:
        ctx.logger.info("Script does not start with an output check")
        ctx.output({"shared_coin_leaf": False})
        return

    ctx.output({"shared_coin_leaf": True, **constraint.to_dict()})


@cli.command()
@click.argument('stakeholders_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('script_hex')
@pass_context
def locate(ctx: CLIContext, stakeholders_file: str, script_hex: str):
    """Find the committed leaf for SCRIPT_HEX and its control block."""
    stakeholders = load_stakeholders(stakeholders_file)
    script = parse_hex(script_hex, 'SCRIPT_HEX')

    try:
        info = ctx.builder().spend_info(stakeholders, script)
    except (SharedCoinError, CryptoError, ScriptError, ValueError) as e:
        raise click.ClickException(str(e))

    ctx.output(info.to_dict())


@cli.command()
@click.argument('witness_program_hex')
@click.argument('script_hex')
@click.argument('control_block_hex')
@pass_context
def verify(ctx: CLIContext, witness_program_hex: str, script_hex: str, control_block_hex: str):
    """Check that SCRIPT_HEX with CONTROL_BLOCK_HEX spends WITNESS_PROGRAM_HEX."""
    witness_program = parse_hex(witness_program_hex, 'WITNESS_PROGRAM_HEX')
    script = parse_hex(script_hex, 'SCRIPT_HEX')
    control = parse_hex(control_block_hex, 'CONTROL_BLOCK_HEX')

    try:
        valid = verify_script_path(witness_program, script, control)
    except (CryptoError, ValueError) as e:
        raise click.ClickException(str(e))

    ctx.output({"valid": valid})
    if not valid:
        sys.exit(1)


def main():
    """Main CLI entry point."""
    cli(prog_name='sharedcoin')


if __name__ == '__main__':
    main()
