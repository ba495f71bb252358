"""Command-line interface for blockproducer."""
