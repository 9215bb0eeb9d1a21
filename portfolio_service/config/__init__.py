"""Configuration package for the Stockfolio service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
