"""Command-line interface for orgledger."""
