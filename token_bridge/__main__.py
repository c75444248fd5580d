"""Run the bridge with uvicorn on the configured bind address."""

import uvicorn

from token_bridge.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "token_bridge.main:app",
        host=settings.bind_host,
        port=settings.bind_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
