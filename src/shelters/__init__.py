"""Raidable shelters: timed lootable structures spawned near live players."""

__version__ = "1.3.0"
