"""Core module for configuration, logging, tracing and shared exceptions.

Patterns applied:
- Pydantic Settings with SettingsConfigDict
- Custom namespaced exceptions (no shadowing of builtins)
"""
