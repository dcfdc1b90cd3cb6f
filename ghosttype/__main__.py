"""Entry point for ``python -m ghosttype`` and the ``ghosttype`` script."""

from __future__ import annotations

from typing import Sequence


def main(argv: Sequence[str] | None = None) -> int:
    from .cli import main as cli_main

    return cli_main(list(argv) if argv is not None else None)


if __name__ == "__main__":
    raise SystemExit(main())
