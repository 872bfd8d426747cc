from . import health, lmra_sessions, tras

__all__ = ["health", "lmra_sessions", "tras"]
