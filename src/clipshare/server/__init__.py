"""HTTP surface for the clipshare daemon."""

from clipshare.server.app import create_app

__all__ = ["create_app"]
