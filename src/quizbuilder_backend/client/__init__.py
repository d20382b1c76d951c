from .access_client import RemoteAccessClient

__all__ = ["RemoteAccessClient"]
