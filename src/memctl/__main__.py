"""Allow ``python -m memctl``."""

from memctl.cli import cli

if __name__ == "__main__":
    cli()
