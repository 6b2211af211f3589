"""Module entrypoint for ``python -m manifold_solver``."""

from __future__ import annotations

from manifold_solver.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
