from __future__ import annotations

from stylesentinel.cli import app


def main() -> None:
    app(prog_name="stylesentinel")


if __name__ == "__main__":  # pragma: no cover
    main()
