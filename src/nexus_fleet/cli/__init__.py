"""nexus-fleet command-line interface (typer + rich)."""
