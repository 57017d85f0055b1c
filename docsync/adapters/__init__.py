"""Adapters to the outside world: remote API and connectivity."""
