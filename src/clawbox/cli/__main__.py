"""Allow running as `python -m clawbox.cli` (used to spawn the power daemon)."""

from .main import main

main()
