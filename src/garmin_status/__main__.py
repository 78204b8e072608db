"""Punto de entrada: ``python -m garmin_status``."""

from __future__ import annotations

from garmin_status.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
