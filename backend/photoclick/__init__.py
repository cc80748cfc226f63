"""
PhotoClick Relay — Application Package Initializer
===================================================

What: Marks the `photoclick` directory as a Python package.
Why:  Enables module imports like `from photoclick.config import settings`.
Who:  Used by uvicorn (`photoclick.main:app`), pytest, and `python -m photoclick`.

Architecture Note:
    ┌─────────────────────────────────────┐
    │     Routes (relay / auth / health)  │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     ActionDispatcher (services)     │  ← validation, request shaping
    ├─────────────────────────────────────┤
    │  ContentProvider / IdentityVerifier │  ← Gemini, Google identity
    └─────────────────────────────────────┘

    Nothing is persisted. Every request builds its value objects, calls out
    once, and discards them when the response is sent.
"""

__version__ = "1.0.0"
