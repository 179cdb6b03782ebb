"""
Speech synthesis adapter contracts.

This module defines the *interface only*. Fallback policy, playback and
the speaking flag live in the speech pipeline.

Key invariants:
- Adapters never emit session events; the pipeline does.
- Run IDs are owned by the orchestrator. Adapters never see them.
- A remote adapter either returns a non-empty encoded payload or raises
  SynthesisError. It never returns empty bytes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from speech.voices import ToneStyle, Utterance, VoiceInfo


class SynthesisError(RuntimeError):
    """Remote or on-device synthesis failed for one request."""


class RemoteSynthesizer(ABC):
    """
    Text -> encoded audio payload, via a network provider.

    Implementations are responsible for:
    - Mapping ToneStyle onto provider voice settings
    - Collecting the full response body
    - Translating every provider/transport failure into SynthesisError

    Non-responsibilities:
    - No decoding, no playback
    - No retries
    """

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True when credentials for the provider are present."""
        raise NotImplementedError

    @abstractmethod
    async def synthesize(self, *, text: str, style: ToneStyle) -> bytes:
        """
        Synthesize text and return the encoded audio payload.

        Raises:
            SynthesisError on any failure, including an empty payload.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None


class LocalSynthesizer(ABC):
    """
    On-device speech engine.

    speak() completes when the utterance has finished playing.
    """

    @property
    @abstractmethod
    def available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_voices(self) -> tuple[VoiceInfo, ...]:
        raise NotImplementedError

    @abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        """
        Speak one utterance and return once it has ended.

        Raises:
            SynthesisError if the engine fails mid-utterance.
        """
        raise NotImplementedError

    def close(self) -> None:
        return None
