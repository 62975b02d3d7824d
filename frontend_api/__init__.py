from .frontend_api import app

__all__ = ["app"]
