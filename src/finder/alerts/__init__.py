"""Standout-finding notifications."""
