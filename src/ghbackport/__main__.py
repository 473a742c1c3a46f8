"""CLI entry point for ghbackport."""

from __future__ import annotations

from ghbackport.cli.commands.root import cli


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
