"""Command-line client for the smart bin monitoring service (``smartbin``)."""
