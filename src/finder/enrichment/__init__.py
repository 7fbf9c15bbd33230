"""Optional finding enrichment (trend and social-proof signals)."""
