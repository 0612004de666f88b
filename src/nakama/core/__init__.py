"""Core configuration and token handling."""
