"""Blockchain connector package for the node collaborator."""
from .provider import NodeProvider

__all__ = [
    "NodeProvider",
]
