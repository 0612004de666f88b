# src/nakama/db/__init__.py
"""Database configuration and utilities."""

from .session import Base, SessionLocal, get_db, transaction

__all__ = ["Base", "get_db", "SessionLocal", "transaction"]
