"""
Run the relay as a standalone server: `python -m photoclick`.

Host and port come from BACKEND_HOST / BACKEND_PORT.
"""

import uvicorn

from photoclick.config import settings


def main() -> None:
    uvicorn.run(
        "photoclick.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
