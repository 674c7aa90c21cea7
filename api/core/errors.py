"""
Error types shared across features.

Store failures are explicit and separable from client errors: routes never
catch them, `main.py` maps any `StoreError` to a 500 response.
"""

from __future__ import annotations


class ConfigError(RuntimeError):
    pass


class StoreError(RuntimeError):
    pass


class ObjectStoreError(StoreError):
    pass


class RecordStoreError(StoreError):
    pass
