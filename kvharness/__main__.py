"""Allow running the CLI with ``python -m kvharness``."""

from kvharness.cli.cli import main

if __name__ == "__main__":
    exit(main())
