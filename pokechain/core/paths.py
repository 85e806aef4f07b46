"""
Centralized path helpers.
"""
from __future__ import annotations
import os
from pathlib import Path

# This file lives at pokechain/core/paths.py
PACKAGE = Path(__file__).resolve().parents[1]
DATA = PACKAGE / "data"
CATALOG_FILE = DATA / "catalog.json"
CATALOG_SCHEMA = DATA / "catalog.schema.json"

SAVE_DIR_NAME = ".pokechain_saves"

def default_save_dir() -> Path:
    return Path(os.path.expanduser("~")) / SAVE_DIR_NAME
