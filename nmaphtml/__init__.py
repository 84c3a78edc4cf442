"""nmaphtml package turning Nmap XML scan results into standalone HTML reports."""

from __future__ import annotations

__all__ = ["__version__"]

# Semantic version for package consumers.
__version__ = "1.0.0"
