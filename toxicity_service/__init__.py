"""Toxicity-Service: moderation gate for the chat message pipeline.

Every outgoing or edited chat message is classified before it is stored:
- Primary remote classifier (Gemini)
- Secondary remote classifier (Groq)
- Local lexicon fallback that is always available
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
