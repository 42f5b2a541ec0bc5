# carmarket/api/__init__.py
# This file makes the api directory a Python package.

from . import listings
from . import moderation
from . import reports

__all__ = [
    "listings",
    "moderation",
    "reports",
]
