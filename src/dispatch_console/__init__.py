"""
dispatch_console

Real-time dispatch console server: a Socket.IO channel over a small document store.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
