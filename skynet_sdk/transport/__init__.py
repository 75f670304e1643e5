from .http import HttpTransport, Request, Response, join_url  # noqa: F401

__all__ = ["HttpTransport", "Request", "Response", "join_url"]
