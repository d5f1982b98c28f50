"""Configuration package for the dashboard proxy."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
