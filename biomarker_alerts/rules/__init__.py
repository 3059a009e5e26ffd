"""Rule package that ensures registration on import."""
from __future__ import annotations

from importlib import import_module

# Registration order is evaluation order.
_MODULES = [
    "out_of_range",
    "sustained_trend",
    "improvement",
]

for _module in _MODULES:
    import_module(f"{__name__}.{_module}")

__all__ = list(_MODULES)
