"""Entry point for running archdocs as a module.

Usage:
    python -m archdocs [command] [options]

Example:
    python -m archdocs generate --workspace .
    python -m archdocs check
"""

from archdocs.cli import app

if __name__ == "__main__":
    app()
