"""Live upload notifications over WebSocket."""
from .manager import ConnectionManager, get_connection_manager

__all__ = ["ConnectionManager", "get_connection_manager"]
