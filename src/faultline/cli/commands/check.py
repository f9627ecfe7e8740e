"""`faultline check` command implementation."""

from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console

from faultline.configuration import Configuration, load_config
from faultline.logging import configure_logging


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `check` command."""
    parser = subparsers.add_parser("check", help="Report whether a notify attempt would proceed.")
    parser.add_argument("--config", required=False, help="YAML config file. Defaults to the environment.")
    parser.add_argument("--release-stage", default=None, help="Override the configured release stage.")
    parser.set_defaults(command="check")


def run(args: argparse.Namespace) -> int:
    """Execute the `check` command; 0 when notifying would proceed, else 1."""
    logger = configure_logging()
    overrides = {"logger": logger}
    if getattr(args, "release_stage", None):
        overrides["release_stage"] = args.release_stage

    config_path = getattr(args, "config", None)
    config: Configuration
    if config_path:
        config = load_config(Path(config_path), **overrides)
    else:
        config = Configuration.from_env(**overrides)

    key_ok = config.valid_api_key()
    stage_ok = config.should_notify_release_stage()

    console = Console()
    console.print(f"api key:       {'ok' if key_ok else 'INVALID'}")
    console.print(f"release stage: {config.release_stage or '-'} ({'notifies' if stage_ok else 'suppressed'})")
    console.print(f"endpoint:      {config.endpoint}")
    console.print(f"delivery:      {config.delivery_method.value}")
    return 0 if key_ok and stage_ok else 1
