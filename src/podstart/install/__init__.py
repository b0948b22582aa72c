"""Tool installation: package managers, privilege ladder, install strategies."""
