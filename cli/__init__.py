"""
Scriptura - Command Line Interface

Lookup, search and import commands over the reference engine.
"""
from cli.main import app, main

__all__ = ["app", "main"]
