"""Core resolution, batching and validation logic."""
