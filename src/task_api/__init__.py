"""
Task Manager backend package.

A FastAPI service for managing personal tasks (filtering, sorting and
statistics over a pluggable store) plus a small Python client mirroring the
mobile app's client state. The ASGI application lives in ``task_api.main``.
"""

__version__ = "0.1.0"
