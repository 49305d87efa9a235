"""
sreach_lag package entry point.

Allows running sreach_lag as a module:
    python -m sreach_lag analyze --problem problem.yaml
"""

from sreach_lag.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
