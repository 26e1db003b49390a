"""Command line interface for arcadelink."""
