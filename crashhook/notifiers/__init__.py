"""
Built-in notifiers for Crashhook.

Every module in this package is imported so its @register_notifier
decorators run; the Notifier subclasses each module lists in __all__ are
re-exported here.
"""

import importlib
import inspect
import pkgutil

from crashhook.core import Notifier as BaseNotifier
from crashhook.logging_config import get_logger

logger = get_logger(__name__)

__all__ = []


def _exported_notifiers(module_name: str) -> list[tuple[str, type]]:
    """Import a notifier module and return its valid exports."""
    module = importlib.import_module(f"{__name__}.{module_name}")
    exports = []
    for name in getattr(module, "__all__", []):
        cls = getattr(module, name)
        if not (inspect.isclass(cls) and issubclass(cls, BaseNotifier)):
            logger.warning(
                "Export '%s' in module '%s' is not a Notifier subclass - skipping",
                name,
                module_name
            )
            continue
        exports.append((name, cls))
    return exports


for _module_info in pkgutil.iter_modules(__path__):
    for _name, _cls in _exported_notifiers(_module_info.name):
        if _name in __all__:
            logger.warning(
                "Duplicate notifier name '%s' in module '%s' - skipping",
                _name,
                _module_info.name
            )
            continue
        globals()[_name] = _cls
        __all__.append(_name)
