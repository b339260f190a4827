"""Project root entry point for launching the web interface."""

from __future__ import annotations

from autotranslate.web import create_app


def main():
    app = create_app()
    app.run(host="127.0.0.1", port=5500, debug=False)


if __name__ == "__main__":
    main()
