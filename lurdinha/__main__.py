# lurdinha/__main__.py
from __future__ import annotations

import uvicorn

from lurdinha.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "lurdinha.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
