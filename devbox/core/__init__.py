"""Core — models, services, engine, persistence."""
