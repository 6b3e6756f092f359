"""Overlay module - OBS browser-source output."""

from .server import OverlayServer

__all__ = ["OverlayServer"]
