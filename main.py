"""
Entry point for the Simorgh review API.

Run with:
    uvicorn main:app --reload --port 8200
    python main.py
"""
import uvicorn

from config import get_settings
from simorgh.api.main import create_app
from simorgh.log_setup import configure_logging

settings = get_settings()
configure_logging(settings.log_level, settings.log_file)

app = create_app(settings=settings)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
