"""Optical cursor tracking and portrait crop stabilization."""


from typing import TYPE_CHECKING, Any

__all__ = ["AppConfig", "TrackingEngine", "TrackingMode", "load_config"]

if TYPE_CHECKING:  # pragma: no cover - for static type checkers only
    from .config import AppConfig, load_config
    from .engine import TrackingEngine
    from .state import TrackingMode

_LAZY = {
    "AppConfig": ".config",
    "load_config": ".config",
    "TrackingEngine": ".engine",
    "TrackingMode": ".state",
}


def __getattr__(name: str) -> Any:
    if name in _LAZY:
        import importlib

        module = importlib.import_module(_LAZY[name], __name__)
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
