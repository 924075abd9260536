"""Cairn: weekly open-source participation harvesting from GitHub.

The package ingests pull request and issue activity for configured
organizations and tracked contributors, buckets it by UTC calendar week, and
persists it behind a durable watermark so long backfills resume safely.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
