"""Transcript acquisition: providers, parsers and the acquisition engine."""
