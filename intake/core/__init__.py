"""Core interfaces shared across layers."""
