from .http import HttpVersioningBackend

__all__ = ["HttpVersioningBackend"]
