"""
ASGI entry point.

Used by uvicorn / gunicorn:

    uvicorn server.asgi:app

or `voice-session-api` (see run()).
"""

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()


def run() -> None:
    """Serve the API with uvicorn (console script entry point)."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    uvicorn.run(
        "server.asgi:app",
        host="0.0.0.0",
        port=8000,
        log_level=app.state.config.log_level.lower(),
    )
