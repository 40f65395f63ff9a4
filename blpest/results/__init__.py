"""Structured results of solved problems."""
