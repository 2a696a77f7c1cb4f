"""
Chat pipeline app: stage chain, tool-calling loop and streaming assembler.

Public entrypoint:

    from chatflow import create_chat_client
    client = create_chat_client()
"""

from .service.client import ChatClient, create_chat_client  # noqa: F401

__all__ = ["ChatClient", "create_chat_client"]
