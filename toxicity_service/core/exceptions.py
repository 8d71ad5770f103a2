"""
Toxicity-Service - Custom Exceptions

Anti-Patterns Avoided:
- Exception shadowing: custom namespaced exceptions instead of builtins
  like ConnectionError or TimeoutError
"""


class ToxicityServiceError(Exception):
    """Base exception for Toxicity-Service.

    All custom exceptions inherit from this base class.
    """
    pass


class ConfigurationError(ToxicityServiceError):
    """Raised when configuration is invalid or missing."""
    pass
