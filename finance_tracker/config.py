"""Configuration management for the finance tracker.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directory holding the JSON documents
DATA_DIR = Path(os.getenv("FINTRACK_DATA_DIR", _PROJECT_ROOT / "data"))

FINANCIAL_DATA_FILE = "financial-data.json"
FINANCIAL_CONFIG_FILE = "financial-config.json"
SAVINGS_GOALS_FILE = "savings-goals.json"

DEFAULT_PROJECTION_MONTHS = 36


def get_data_dir() -> Path:
    """Return the data directory, re-reading the environment override."""
    override = os.getenv("FINTRACK_DATA_DIR")
    return Path(override) if override else DATA_DIR


def ensure_data_directories(data_dir: Path | None = None) -> Path:
    """Create the data directory if it doesn't exist."""
    target = data_dir or get_data_dir()
    target.mkdir(parents=True, exist_ok=True)
    return target
