import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from signal_agent.config.settings import settings  # noqa: E402


def main():
    """Run the FastAPI application."""
    uvicorn.run(
        "signal_agent.api.app:app",
        host=settings.api.HOST,
        port=settings.api.PORT,
        reload=True,  # Enable auto-reload for development
        log_level="info"
    )


if __name__ == "__main__":
    main()
