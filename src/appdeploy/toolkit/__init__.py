"""Deployment toolkit collaborators."""

from appdeploy.toolkit.base import ProcessResult, Toolkit
from appdeploy.toolkit.loader import load_toolkit

__all__ = [
    "ProcessResult",
    "Toolkit",
    "load_toolkit",
]
