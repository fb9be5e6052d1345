"""Tracker API main entry point."""

import logging

import uvicorn

from backend.api.app import create_app
from tracker.core.utils import set_logging_level

set_logging_level(logging.INFO)

# Create the application
app = create_app()

if __name__ == "__main__":
    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=True)
