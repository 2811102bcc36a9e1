"""appdeploy - application deployment orchestrator for managed endpoints."""

__version__ = "0.3.0"
