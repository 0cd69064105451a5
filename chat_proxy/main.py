import uvicorn

from chat_proxy.core.app_factory import create_app
from chat_proxy.core.config import settings

app = create_app()


def run() -> None:
    """Serve the app with uvicorn on ``APP_HOST``:``APP_PORT``."""
    uvicorn.run(
        app,
        host=settings.app.host,
        port=settings.app.port,
    )


if __name__ == "__main__":
    run()
