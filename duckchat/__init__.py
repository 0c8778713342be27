"""UDP chat: wire protocol, terminal client and federated chat server."""

__version__ = "0.1.0"
__all__ = ["__version__"]