"""
WebShield - Main Entry Point
=============================
ASGI entry point for platform deployments (`uvicorn main:app`).
"""

import os

from webshield.api.server import app

__all__ = ["app"]

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
