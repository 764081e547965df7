"""
Upstream loaders.

Supports:
- Fathom meetings (with inline transcripts) via the external API
"""

from app.ingestion.loaders.fathom_loader import FathomLoader

__all__ = [
    "FathomLoader",
]
