"""Session state and signaling relay for ephemeral multi-party meetings."""

__version__ = "0.1.0"
