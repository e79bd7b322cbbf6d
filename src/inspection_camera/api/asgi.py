"""ASGI entrypoint for the inspection camera API."""

from inspection_camera.api.app import create_app
from inspection_camera.containers import build_container

app = create_app(build_container())
