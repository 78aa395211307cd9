"""ASGI entrypoint for the slideshow ingestion API."""

from slideshow_ingest.api.app import create_app
from slideshow_ingest.containers import build_container

app = create_app(build_container())
