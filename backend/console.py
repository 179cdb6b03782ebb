"""
Terminal voice session.

Runs one hands-free session against the local microphone and speakers:
prints wake events and commands, and answers each wake with a short
spoken acknowledgement. Configuration comes from the environment
(see config.AppConfig); a .env file is honoured.

    voice-session-console
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from config import AppConfig
from observability import logger
from observability.logger import log_event
from session.factory import create_voice_session
from session.session_config import VoiceSessionConfig

if TYPE_CHECKING:
    from session.voice_session import VoiceSession

ACKNOWLEDGEMENT = "Yes?"


async def _run(app_config: AppConfig) -> None:
    pending: set[asyncio.Task[None]] = set()
    session_ref: list[VoiceSession] = []

    def on_wake() -> None:
        print("[wake]")
        if session_ref:
            task = asyncio.get_running_loop().create_task(session_ref[0].speak(ACKNOWLEDGEMENT))
            pending.add(task)
            task.add_done_callback(pending.discard)

    def on_final_transcript(text: str) -> None:
        print(f"[command] {text}")

    config = VoiceSessionConfig(
        wake_word=app_config.wake_word,
        tone=app_config.voice_tone,
        always_listening=app_config.always_listening,
        on_wake=on_wake,
        on_final_transcript=on_final_transcript,
    )
    session = await create_voice_session(config, app_config=app_config)
    session_ref.append(session)

    if not session.state.recognition_available:
        log_event({
            "ts_ms": time.time_ns() // 1_000_000,
            "event_type": "CONSOLE_RECOGNITION_UNAVAILABLE",
            "session_id": session.session_id,
            "hint": "set DEEPGRAM_API_KEY",
        }, level="WARNING")
    elif not app_config.always_listening:
        await session.start_listening()

    try:
        await asyncio.Event().wait()
    finally:
        await session.close()
        for task in list(pending):
            task.cancel()


def main() -> None:
    load_dotenv()
    app_config = AppConfig.load_from_env()
    logger.configure(level=app_config.log_level, enabled=app_config.enable_json_logs)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run(app_config))


if __name__ == "__main__":
    main()
