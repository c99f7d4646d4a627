"""Top-level package for podai."""

__version__ = "0.1.0"

from . import chat, config, gateway, personas, storage, workflow  # noqa: E402

__all__ = ["chat", "config", "gateway", "personas", "storage", "workflow", "__version__"]
