from __future__ import annotations

import uvicorn

from routewatch.settings import get_config


def main() -> None:
    config = get_config()
    uvicorn.run(
        "routewatch.api.app:create_app",
        factory=True,
        host=config.api.host,
        port=int(config.api.port),
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
