"""Run the service with uvicorn: ``python -m botfleet``."""

import uvicorn

from botfleet.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "botfleet.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug and settings.app_env == "development",
        log_config=None,
    )


if __name__ == "__main__":
    main()
