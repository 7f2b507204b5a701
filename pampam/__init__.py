"""pampam — personal chat assistant that routes correspondents to the owner or an AI."""
from __future__ import annotations

__version__ = "0.1.0"
