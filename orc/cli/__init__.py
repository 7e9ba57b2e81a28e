"""orc command-line interface."""
