"""Flip Platform: auth, sessions, and tier-gated access for marketplace deals."""

__version__ = "1.0.0"
