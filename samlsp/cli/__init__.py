"""Command line interface for samlsp."""
