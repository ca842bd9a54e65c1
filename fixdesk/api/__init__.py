"""
HTTP surface of the ticket engine.
"""
from fixdesk.api.app import create_app

__all__ = ["create_app"]
