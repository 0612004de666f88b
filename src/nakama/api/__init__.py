# src/nakama/api/__init__.py
"""HTTP API for the Nakama service."""
