"""Product finder: rate-limited marketplace scanning with adaptive category selection."""

__version__ = "1.0.0"
