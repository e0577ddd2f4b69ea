"""Entry point for running vitestgpt as a module.

Usage:
    python -m vitestgpt [command] [options]

Example:
    python -m vitestgpt run -i src/utils.ts -f deepClone -o src/utils.test.ts
    python -m vitestgpt check
"""

from vitestgpt.cli import app

if __name__ == "__main__":
    app()
