from connmon.server.server import HTTPServer

__all__ = ["HTTPServer"]
