"""Outbound call scheduling."""
