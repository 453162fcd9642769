"""Core domain package for meetrelay.

Core contains presence, signaling, and chat routing logic without any
transport or storage-specific code, keeping the relay logic portable.
"""
