"""ASGI entry point. Configuration comes from ``FOODSAVER_ENV`` and ``foodsaver.toml``."""

from marketplace.app import create_app

app = create_app()
