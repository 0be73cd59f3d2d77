from .client import NocoDBClient

__all__ = ["NocoDBClient"]
