import uvicorn

from imagegen_api.core.app_factory import create_app
from imagegen_api.core.config import settings

app = create_app()


def run() -> None:
    """Serve the API with uvicorn (``imagegen-api`` console script)."""
    uvicorn.run(
        "imagegen_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_env == "development",
        log_config=None,
    )


if __name__ == "__main__":
    run()
