"""
`python -m dispatch_console.api`: serve the console with uvicorn.

In dev the server runs through the app factory with auto-reload on source changes.
"""

from __future__ import annotations

import uvicorn

from dispatch_console.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "dispatch_console.api.app:asgi_app_from_env",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.env == "dev",
        # Logging is configured by the app factory through structlog.
        log_config=None,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
