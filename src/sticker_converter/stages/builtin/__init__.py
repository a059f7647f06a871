"""Builtin conversion chains; importing a module registers its pipeline."""
