"""Run engine — ordered stages with fail-fast / fail-soft policies."""
