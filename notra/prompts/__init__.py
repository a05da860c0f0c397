"""Prompt text for notra's agents."""
