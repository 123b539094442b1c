"""Run the StockPulse API server: python -m stockpulse."""

import uvicorn

from stockpulse.config import settings


def main() -> None:
    """Start uvicorn with the application factory."""
    uvicorn.run(
        "stockpulse.api.routes:build_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
