"""AccountGate: account lifecycle, session tokens and access control."""

__version__ = "0.1.0"
