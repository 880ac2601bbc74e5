"""Headless candidate client for the AI interview backend."""
