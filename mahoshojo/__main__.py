"""
Development server entry point

    python -m mahoshojo
"""

import uvicorn

from mahoshojo.core.config import settings


def main() -> None:
    uvicorn.run(
        "mahoshojo.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
