"""Summary generation and the status coordinator."""
