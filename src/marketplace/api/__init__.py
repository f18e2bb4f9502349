"""Marketplace API package."""

from marketplace.api.factory import create_app

__all__ = ["create_app"]
