"""faultline command-line interface entrypoint."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from faultline.cli.commands import check


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="faultline",
        description="faultline - error-reporting notifier core",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="<command>")
    check.add_subparser(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse args and return the exit code of `faultline check`."""
    args = build_arg_parser().parse_args(argv)
    return check.run(args)


def app() -> None:
    """Console script entrypoint."""
    raise SystemExit(main())


if __name__ == "__main__":
    app()
