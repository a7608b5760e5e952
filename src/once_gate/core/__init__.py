"""Core types, configuration and helpers."""
