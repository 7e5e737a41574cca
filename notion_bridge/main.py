import uvicorn

from notion_bridge.core.app_factory import create_app
from notion_bridge.core.config import settings

app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "notion_bridge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app.debug,
    )


if __name__ == "__main__":
    run()
