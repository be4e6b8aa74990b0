"""
Main entry point for running the Xumm relay server.
"""

import uvicorn

from xumm_relay.settings import Settings


def main():
    """Run the relay server."""
    settings = Settings()
    uvicorn.run(
        "xumm_relay.main:app",
        host=settings.get_app_host(),
        port=settings.get_app_port(),
        reload=settings.get_app_reload(),
        log_level=settings.get_log_level().lower(),
    )


if __name__ == "__main__":
    main()
