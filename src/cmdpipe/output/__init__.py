"""Output layer — render results and reports for the CLI."""
