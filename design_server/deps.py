"""Request dependencies shared by the routers."""

from fastapi import Request

from .core.config import Settings
from .ssi import SSIEngine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_engine(request: Request) -> SSIEngine:
    return request.app.state.ssi
