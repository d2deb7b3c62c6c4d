"""Main entry point for Estate Chat."""

import uvicorn
from dotenv import load_dotenv

from .api import create_fastapi_app
from .app import Application
from .config import PROJECT_ROOT, Settings
from .logging_config import setup_logging


def main():
    """Run the application."""
    load_dotenv(PROJECT_ROOT / ".env")

    settings = Settings.from_env()
    setup_logging(log_level=settings.log_level)

    app = create_fastapi_app(Application(settings=settings))

    # Run with uvicorn
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
