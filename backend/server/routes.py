"""
Route registration for the voice session API.

Responsibilities:
- Define HTTP endpoints
- Validate request payloads
- Pull dependencies from app.state
"""

from __future__ import annotations

import base64
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from adapters.tts.base import RemoteSynthesizer, SynthesisError
from observability.logger import log_event
from orchestrator.enums.tone import Tone
from speech.voices import style_for_tone

PROVIDER_REMOTE = "elevenlabs"
PROVIDER_ON_DEVICE = "on-device"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class VoiceRequest(BaseModel):
    """Body of POST /voice."""
    text: str = Field(min_length=1)
    tone: Optional[Tone] = None


def _on_device() -> JSONResponse:
    return JSONResponse({"audio": None, "provider": PROVIDER_ON_DEVICE})


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.post("/voice")
    async def voice(request: Request) -> JSONResponse: # pyright: ignore[reportUnusedFunction]
        """
        Synthesize text remotely.

        The client plays the returned MP3, or speaks on-device when
        audio is null.
        """
        try:
            body = await request.json()
            payload = VoiceRequest.model_validate(body)

            synthesizer: RemoteSynthesizer | None = app.state.synthesizer
            if synthesizer is None or not synthesizer.configured:
                return _on_device()

            style = style_for_tone(payload.tone or Tone.NEUTRAL)
            try:
                audio = await synthesizer.synthesize(text=payload.text, style=style)
            except SynthesisError as exc:
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "VOICE_ROUTE_REMOTE_FAILED",
                    "style": style.name,
                    "error": str(exc),
                }, level="WARNING")
                return _on_device()

            return JSONResponse({
                "audio": base64.b64encode(audio).decode("ascii"),
                "provider": PROVIDER_REMOTE,
            })

        except ValidationError:
            return JSONResponse({"error": "Invalid voice payload"}, status_code=400)

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "VOICE_ROUTE_ERROR",
                "exception": type(exc).__name__,
                "message": str(exc),
            }, level="ERROR")
            return JSONResponse({"error": "Unable to generate voice"}, status_code=500)
