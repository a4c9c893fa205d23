"""
Plugin initialization for Crashhook.

Importing this module registers every built-in notifier.
"""

# pylint: disable=unused-import
# ruff: noqa: F401
from crashhook import notifiers

from crashhook.registry import create_notifier, get_registry

__all__ = [
    "create_notifier",
    "get_registry",
]
