"""Core types shared by the reconciliation engine and the CLI."""
