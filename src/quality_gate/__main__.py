"""Allow running as `python -m quality_gate`."""

from quality_gate.cli import main

if __name__ == "__main__":
    main()
