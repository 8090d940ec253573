"""Continuous speech-capture state machine.

The engine owns the capture lifecycle for one conversation:

    IDLE ──start()──▶ LISTENING ──silence / finalize()──▶ FINALIZING ──▶ IDLE
      ▲                  │  ▲                                        │
      │                  │  └── capture ended / transient error ─────┘ (restart after backoff)
      └──── stop() ◀─────┘
    SPEAKING: assistant audio playing; start() cancels it first (barge-in).

Capture backends are rarely truly continuous: they end on silence, drop on
network hiccups and so on. While the logical state is LISTENING every such
termination is answered with a restart after ``restart_backoff_ms``.

Fragments arrive as ``CaptureEvent`` objects. Final fragments are appended to
the accumulated transcript; the single interim fragment only replaces a scratch
buffer used for live display. Endpointing is a cooperative poll comparing the
clock to the last fragment timestamp.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("katzai.voice")

RECOVERABLE_ERRORS = frozenset({"no-speech", "aborted", "network"})


class TurnEngineState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    FINALIZING = "finalizing"
    SPEAKING = "speaking"


@dataclass(slots=True)
class CaptureEvent:
    """One recognition callback: zero or more finals, at most one interim."""

    finals: list[str] = field(default_factory=list)
    interim: Optional[str] = None


class CaptureBackend(ABC):
    """Microphone / recognizer session controlled by the engine."""

    @abstractmethod
    async def start(self) -> None:
        """Begin (or resume) capturing speech."""

    @abstractmethod
    async def stop(self) -> None:
        """Halt capture."""


class SpeechSynthesizer(ABC):
    """Fire-and-forget, cancelable speech playback."""

    @abstractmethod
    async def speak(self, text: str, *, rate: float, pitch: float) -> None:
        """Start speaking ``text``; must not wait for playback to finish."""

    @abstractmethod
    async def cancel(self) -> None:
        """Stop any playback in progress."""


UtteranceHandler = Callable[[str], Awaitable[None]]
StateListener = Callable[[TurnEngineState, TurnEngineState], Awaitable[None]]
UnavailableListener = Callable[[str], Awaitable[None]]


class TurnEngine:
    """Turn-taking state machine for a single voice conversation."""

    def __init__(
        self,
        capture: CaptureBackend | None,
        synthesizer: SpeechSynthesizer | None,
        on_utterance: UtteranceHandler,
        *,
        silence_threshold_ms: int = 1500,
        silence_poll_interval_ms: int = 500,
        restart_backoff_ms: int = 500,
        speech_rate: float = 1.1,
        speech_pitch: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: StateListener | None = None,
        on_unavailable: UnavailableListener | None = None,
    ) -> None:
        self._capture = capture
        self._synthesizer = synthesizer
        self._on_utterance = on_utterance
        self._on_state_change = on_state_change
        self._on_unavailable = on_unavailable
        self._clock = clock

        self.silence_threshold = silence_threshold_ms / 1000
        self.poll_interval = silence_poll_interval_ms / 1000
        self.restart_backoff = restart_backoff_ms / 1000
        self.speech_rate = speech_rate
        self.speech_pitch = speech_pitch

        self._state = TurnEngineState.IDLE
        self._transcript = ""
        self._interim = ""
        self._last_speech_at: float | None = None
        self._heard_speech = False
        self._speech_active = False
        self._listen_after_speech = False

        self._poll_task: asyncio.Task | None = None
        self._restart_task: asyncio.Task | None = None
        self._delivery_task: asyncio.Task | None = None

        self.voice_available = capture is not None
        self.restart_count = 0

    @property
    def state(self) -> TurnEngineState:
        return self._state

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def interim(self) -> str:
        return self._interim

    @property
    def live_text(self) -> str:
        return " ".join(part for part in (self._transcript, self._interim) if part)

    @property
    def speech_active(self) -> bool:
        return self._speech_active

    async def start(self) -> None:
        if self._capture is None or not self.voice_available:
            logger.info("Speech capture unavailable; voice input disabled")
            self.voice_available = False
            return

        await self.cancel_speech()
        self._reset_buffers()
        await self._set_state(TurnEngineState.LISTENING)
        try:
            await self._capture.start()
        except Exception:  # noqa: BLE001
            logger.exception("Capture backend failed to start")
            await self._fail("capture-start-failed")
            return
        self._ensure_poller()

    async def stop(self) -> None:
        self._cancel_timers()
        self._interim = ""
        await self._set_state(TurnEngineState.IDLE)
        await self._stop_capture()

    async def handle_result(self, event: CaptureEvent) -> None:
        if self._state is not TurnEngineState.LISTENING:
            return

        finals = [fragment.strip() for fragment in event.finals if fragment and fragment.strip()]
        interim = (event.interim or "").strip()

        if finals:
            self._transcript = " ".join([self._transcript, *finals]).strip()
            self._interim = ""
        if interim:
            self._interim = interim
        if finals or interim:
            self._last_speech_at = self._clock()
            self._heard_speech = True

    async def handle_end(self) -> None:
        """Capture session terminated on its own."""

        if self._state is not TurnEngineState.LISTENING:
            logger.debug("Capture ended in %s; not restarting", self._state.value)
            return
        if self._restart_task is not None and not self._restart_task.done():
            return
        self._restart_task = asyncio.create_task(self._restart_after_backoff())

    async def handle_error(self, code: str) -> None:
        if code in RECOVERABLE_ERRORS:
            logger.debug("Transient capture error %s", code)
            await self.handle_end()
            return
        logger.warning("Unrecoverable capture error %s; voice input disabled", code)
        await self._fail(code)

    async def check_silence(self) -> bool:
        """Finalize if the speaker has been quiet long enough."""

        if self._state is not TurnEngineState.LISTENING:
            return False
        if not self._transcript or not self._heard_speech or self._last_speech_at is None:
            return False
        if self._clock() - self._last_speech_at < self.silence_threshold:
            return False
        await self._handoff(self._transcript)
        return True

    async def finalize(self) -> str | None:
        """Hand off whatever has been heard so far, bypassing the silence timer."""

        if self._state is TurnEngineState.FINALIZING:
            return None
        text = self.live_text.strip()
        if not text:
            return None
        await self._handoff(text)
        return text

    async def wait_delivered(self) -> None:
        task = self._delivery_task
        if task is not None:
            await asyncio.shield(task)

    async def speak(self, text: str, *, listen_after: bool = False) -> bool:
        """Start playback; return ``False`` when it could not start."""

        if self._synthesizer is None or not text.strip():
            return False

        if self._state is not TurnEngineState.LISTENING:
            await self._set_state(TurnEngineState.SPEAKING)
        self._speech_active = True
        self._listen_after_speech = listen_after
        try:
            await self._synthesizer.speak(text, rate=self.speech_rate, pitch=self.speech_pitch)
        except Exception:  # noqa: BLE001
            logger.exception("Speech synthesis failed")
            self._speech_active = False
            self._listen_after_speech = False
            if self._state is TurnEngineState.SPEAKING:
                await self._set_state(TurnEngineState.IDLE)
            return False
        return True

    async def cancel_speech(self) -> None:
        self._listen_after_speech = False
        if self._speech_active and self._synthesizer is not None:
            try:
                await self._synthesizer.cancel()
            except Exception:  # noqa: BLE001
                logger.exception("Speech cancel failed")
        self._speech_active = False
        if self._state is TurnEngineState.SPEAKING:
            await self._set_state(TurnEngineState.IDLE)

    async def on_speech_end(self) -> None:
        listen_after = self._listen_after_speech
        self._speech_active = False
        self._listen_after_speech = False
        if self._state is TurnEngineState.SPEAKING:
            await self._set_state(TurnEngineState.IDLE)
        if listen_after:
            await self.start()

    async def close(self) -> None:
        await self.cancel_speech()
        await self.stop()
        if self._delivery_task is not None and not self._delivery_task.done():
            self._delivery_task.cancel()

    async def _handoff(self, text: str) -> None:
        # Buffers are cleared before the first await so no later event can
        # append to the utterance being delivered.
        previous = self._state
        self._state = TurnEngineState.FINALIZING
        self._reset_buffers()
        self._cancel_restart()
        logger.info("Utterance finalized (%d chars)", len(text))

        await self._notify(previous, TurnEngineState.FINALIZING)
        await self._stop_capture()
        self._delivery_task = asyncio.create_task(self._deliver(text))

    async def _deliver(self, text: str) -> None:
        try:
            await self._on_utterance(text)
        except Exception:  # noqa: BLE001
            logger.exception("Utterance handler failed")
        finally:
            if self._state is TurnEngineState.FINALIZING:
                await self._set_state(TurnEngineState.IDLE)

    async def _restart_after_backoff(self) -> None:
        if self.restart_backoff > 0:
            await asyncio.sleep(self.restart_backoff)
        if self._state is not TurnEngineState.LISTENING or self._capture is None:
            return
        try:
            await self._capture.start()
        except Exception:  # noqa: BLE001
            logger.exception("Capture restart failed")
            await self._fail("restart-failed")
            return
        self.restart_count += 1
        logger.debug("Capture restarted (%d)", self.restart_count)

    async def _poll_silence(self) -> None:
        while self._state is TurnEngineState.LISTENING:
            await asyncio.sleep(self.poll_interval)
            await self.check_silence()

    def _ensure_poller(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_silence())

    async def _fail(self, code: str) -> None:
        self._cancel_timers()
        self._interim = ""
        self.voice_available = False
        await self._set_state(TurnEngineState.IDLE)
        await self._stop_capture()
        if self._on_unavailable is not None:
            try:
                await self._on_unavailable(code)
            except Exception:  # noqa: BLE001
                logger.exception("Voice-unavailable listener failed")

    async def _stop_capture(self) -> None:
        if self._capture is None:
            return
        try:
            await self._capture.stop()
        except Exception:  # noqa: BLE001
            logger.exception("Capture backend failed to stop")

    def _reset_buffers(self) -> None:
        self._transcript = ""
        self._interim = ""
        self._last_speech_at = None
        self._heard_speech = False

    def _cancel_restart(self) -> None:
        if self._restart_task is not None and self._restart_task is not asyncio.current_task():
            self._restart_task.cancel()
        self._restart_task = None

    def _cancel_timers(self) -> None:
        current = asyncio.current_task()
        if self._poll_task is not None and self._poll_task is not current:
            self._poll_task.cancel()
        self._poll_task = None
        self._cancel_restart()

    async def _set_state(self, new_state: TurnEngineState) -> None:
        previous = self._state
        self._state = new_state
        if previous is not new_state:
            await self._notify(previous, new_state)

    async def _notify(self, previous: TurnEngineState, new_state: TurnEngineState) -> None:
        logger.debug("Turn engine %s -> %s", previous.value, new_state.value)
        if self._on_state_change is None:
            return
        try:
            await self._on_state_change(previous, new_state)
        except Exception:  # noqa: BLE001
            logger.exception("State listener failed")
