"""Test package for the sticker conversion engine."""
