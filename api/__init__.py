"""
Scriptura - HTTP API

FastAPI routes over the reference engine.
"""
