# worklead/database/__init__.py
from __future__ import annotations

# IMPORTANT: register every table on Base.metadata before init_models()
from . import models  # noqa: F401
from .session import Database

__all__ = ["Database"]
