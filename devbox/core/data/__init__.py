"""Packaged data — default configuration and editor templates."""
