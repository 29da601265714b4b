"""Module entrypoint for running moravoice as ``python -m moravoice``."""

from __future__ import annotations

from moravoice.cli import main


if __name__ == "__main__":
    main()
