"""CRUD package exports with lazy module loading.

Record stores never commit; transactions belong to the services layer.
"""

from importlib import import_module

__all__ = ["listing", "moderation_log", "report", "comment", "user"]


def __getattr__(name):
    if name in __all__:
        return import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
