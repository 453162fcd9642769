"""Adapters that connect the core to SQLite, FastAPI, and WebSockets."""
