"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: API paths, error codes, timing defaults
- exceptions: Lifecycle exception hierarchy
"""
