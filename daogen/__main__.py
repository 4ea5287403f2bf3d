# File: daogen/__main__.py
"""
daogen - Module entry point.

Allows running the generator directly via::

    python -m daogen --table users --database shop --host 127.0.0.1

Delegates to ``daogen.cli.cli_main``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from daogen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
