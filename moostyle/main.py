"""
Name: Backend ASGI Entrypoint (moostyle.main)

Responsibilities:
  - Re-export the ASGI app for uvicorn/gunicorn and tests

Notes/Constraints:
  - No configuration or IO should live here
  - Servers are configured to import moostyle.main:app
"""

from moostyle.api.main import app

__all__ = ["app"]
