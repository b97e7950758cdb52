"""Allow ``python -m taskgraph``."""

from taskgraph.cli import main

main()
