"""API module - Local HTTP endpoints and their client."""

from .client import PageConfig, fetch_page_config
from .routes import ChatApi

__all__ = ["ChatApi", "PageConfig", "fetch_page_config"]
