"""Module entry-point for ``python -m infra_graph``."""

from infra_graph.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
