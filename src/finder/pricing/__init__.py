"""Supplier cost estimation and profitability math."""
