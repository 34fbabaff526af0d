"""CLI command groups registered by devbox.main."""
