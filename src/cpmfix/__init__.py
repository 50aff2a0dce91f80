"""cpmfix - repair package-reference inconsistencies in .NET solutions."""

from __future__ import annotations

__version__ = "0.1.0"
