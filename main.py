"""CLI entry point for the artist constellation and Connections game."""

import sys

from constellation.connections_cli import main

if __name__ == "__main__":
    sys.exit(main())
