"""CLI commands for appdeploy."""
