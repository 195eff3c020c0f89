"""ASGI entrypoint for the tattoo preview API."""

from tattoo_preview.api.app import create_app
from tattoo_preview.containers import build_container

app = create_app(build_container())
