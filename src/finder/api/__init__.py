"""HTTP API for on-demand scans and read-only views."""
