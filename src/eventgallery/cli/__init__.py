"""Command line entry points for operators."""
