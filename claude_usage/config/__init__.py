"""Configuration loading for Claude Usage."""
