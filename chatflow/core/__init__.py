from .interfaces import ChatModel

__all__ = ["ChatModel"]
