"""Courier HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application for report submission, job status, artifact download,
and the public download redirect.

Usage
-----
Create and run the application::

    from courier.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full mode with domain endpoints

"""

from courier.api.app import create_app

__all__ = ["create_app"]
