"""Shared FastAPI dependencies."""
import time

from fastapi import Request

from .config import Settings


def get_settings(request: Request) -> Settings:
    """Settings loaded for this app at startup."""
    return request.app.state.settings


def get_now() -> int:
    """Current time in whole epoch seconds."""
    return int(time.time())
