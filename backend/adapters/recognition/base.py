"""
Recognition engine contract.

This module defines the *interface only*.

Key invariants:
- Run IDs are owned by the orchestrator. Engines tag every event with the
  run_id passed to start() and never invent their own.
- An engine emits RecognitionResult / RecognitionEnded; it does not call the
  reducer or make state transitions.
- stop(run_id) ends that session without emitting RecognitionEnded.
  Only an end the caller did not ask for is reported.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class RecognitionEngine(ABC):
    """
    Abstract continuous speech recognition engine.

    Implementations are responsible for:
    - Capturing microphone audio for the duration of a session
    - Streaming it to a recognizer with interim results enabled
    - Emitting RecognitionResult for every interim/final update
    - Emitting RecognitionEnded when the session ends on its own
      (provider timeout, network drop, connect failure)

    Non-responsibilities:
    - No auto-restart (the reducer decides)
    - No wake-word handling
    """

    @property
    def available(self) -> bool:
        """False when the platform has no recognition capability."""
        return True

    @abstractmethod
    async def start(self, run_id: int) -> None:
        """
        Begin a recognition session tagged run_id and return promptly.

        Starting while a previous session is still running replaces it;
        the replaced session emits nothing further.
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self, run_id: int) -> None:
        """
        Stop the session for run_id. No-op if run_id is not current.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Stop whatever is running. Called once on session close."""
        return None


class UnavailableRecognitionEngine(RecognitionEngine):
    """Placeholder for hosts without recognition credentials or devices."""

    @property
    def available(self) -> bool:
        return False

    async def start(self, run_id: int) -> None:
        return None

    async def stop(self, run_id: int) -> None:
        return None
