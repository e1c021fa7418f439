"""PortManager - see which process holds a port, and kill it."""

__version__ = "1.0.0"
