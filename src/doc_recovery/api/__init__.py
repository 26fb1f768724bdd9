"""
Document Recovery API Package

Contains the FastAPI application factory and the default application.
"""

# Lazy import so models and services load without FastAPI
__all__ = ["app", "create_app"]


def __getattr__(name):
    if name in __all__:
        from doc_recovery.api import main

        return getattr(main, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
