"""Immutable snapshots handed across the registry core boundary."""
