"""
CLI runner module.

Provides commands:
- init: Create config and database
- add: Record a loss entry
- export: Write pending entries to per-reason files
- import: Load an export file
- status: Loss totals and pending count
- files / reasons / catalog: Inspection and catalog upkeep
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
