"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (remote synthesizer)
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.tts.base import RemoteSynthesizer
from adapters.tts.elevenlabs_adapter import ElevenLabsSynthesizer
from config import AppConfig
from observability import logger

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    *,
    synthesizer: RemoteSynthesizer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations and a fake synthesizer
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    logger.configure(level=config.log_level, enabled=config.enable_json_logs)

    app = FastAPI(title="Voice Session API")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One remote synthesizer per process; unconfigured is not an error
    app.state.synthesizer = synthesizer if synthesizer is not None else build_synthesizer(config)

    # Routes
    register_routes(app)

    return app


def build_synthesizer(config: AppConfig) -> RemoteSynthesizer | None:
    """Build the ElevenLabs synthesizer when credentials are present."""
    if not config.remote_tts_configured:
        return None
    return ElevenLabsSynthesizer(
        api_key=config.elevenlabs_api_key,
        voice_id=config.elevenlabs_voice_id,
        model_id=config.elevenlabs_model_id,
    )
