"""Run the API server: ``python -m video_orchestrator``."""

import uvicorn

from video_orchestrator.commons.settings import get_settings


def main() -> None:
    server = get_settings().server
    uvicorn.run(
        "video_orchestrator.api.main:app",
        host=server.host,
        port=server.port,
        workers=server.workers,
        reload=server.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
