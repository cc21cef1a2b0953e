import logging

import uvicorn

from smart_queue.lifespan import load_resource


def main() -> None:
    settings = load_resource().settings
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    uvicorn.run(
        "smart_queue.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
