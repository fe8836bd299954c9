"""Development runner with hot reload.

Restarts the bot whenever a .py file under the project changes. Prompt
templates and formatter rules live in .py files, so edits to them show up in
the next preview without a manual restart.

Usage:
    python dev.py
"""
from watchfiles import run_process


def _run_bot():
    from main import main
    main()


def _is_source(change, path: str) -> bool:
    return path.endswith(".py") and "/tests/" not in path


if __name__ == "__main__":
    print("Dev mode: watching for .py changes, bot will restart automatically.")
    run_process(".", target=_run_bot, watch_filter=_is_source)
