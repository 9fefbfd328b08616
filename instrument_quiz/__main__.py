from __future__ import annotations

from .app import run


def main() -> int:
    """Console entry point; configuration comes from INSTRUMENT_QUIZ_* variables."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
