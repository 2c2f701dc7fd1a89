from __future__ import annotations

version = 1
__version__ = "1.0.0"


__all__ = ["version", "__version__"]
