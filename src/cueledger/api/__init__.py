"""
CueLedger - API Module

FastAPI server for cashier and admin operations:
- Station management
- Session start / end with payment collection
- Credit settlement
- Revenue reports
"""

from .server import app, create_app

__all__ = ["app", "create_app"]
