"""Command line interface for WealthSync."""
