"""Command line interface for running samplers."""
