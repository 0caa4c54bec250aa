"""Cross-cutting infrastructure shared by the service and the CLI."""
