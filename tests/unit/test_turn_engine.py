import asyncio
import time

from katzai.voice.turn_engine import (
    CaptureBackend,
    CaptureEvent,
    SpeechSynthesizer,
    TurnEngine,
    TurnEngineState,
)


class RecordingCapture(CaptureBackend):
    def __init__(self, log):
        self.log = log
        self.starts = 0

    async def start(self):
        self.starts += 1
        self.log.append("capture.start")

    async def stop(self):
        self.log.append("capture.stop")


class RecordingSynthesizer(SpeechSynthesizer):
    def __init__(self, log):
        self.log = log

    async def speak(self, text, *, rate, pitch):
        self.log.append("speech.speak")

    async def cancel(self):
        self.log.append("speech.cancel")


def _engine(clock, *, capture=True, synthesizer=True, **overrides):
    log = []
    delivered = []

    async def on_utterance(text):
        delivered.append(text)

    options = {
        "silence_threshold_ms": 1500,
        # Keep the background poller out of the way; tests drive check_silence.
        "silence_poll_interval_ms": 60_000,
        "restart_backoff_ms": 0,
        "clock": clock,
    }
    options.update(overrides)
    engine = TurnEngine(
        RecordingCapture(log) if capture else None,
        RecordingSynthesizer(log) if synthesizer else None,
        on_utterance,
        **options,
    )
    return engine, log, delivered


def test_silence_endpointing_hands_off_once(clock):
    engine, _, delivered = _engine(clock)

    async def scenario():
        await engine.start()
        await engine.handle_result(CaptureEvent(finals=["turn on the light"]))

        clock.now = 1.4
        assert await engine.check_silence() is False

        clock.now = 1.5
        assert await engine.check_silence() is True
        await engine.wait_delivered()

        await engine.handle_result(CaptureEvent(finals=["late words"]))
        assert await engine.finalize() is None
        await engine.close()

    asyncio.run(scenario())

    assert delivered == ["turn on the light"]
    assert engine.transcript == ""
    assert engine.state is TurnEngineState.IDLE


def test_interim_fragments_are_not_double_counted(clock):
    engine, _, delivered = _engine(clock)

    async def scenario():
        await engine.start()
        for partial in ("turn", "turn on", "turn on the light"):
            await engine.handle_result(CaptureEvent(interim=partial))
        assert engine.transcript == ""
        assert engine.live_text == "turn on the light"

        await engine.handle_result(CaptureEvent(finals=["turn on the light"]))
        assert engine.transcript == "turn on the light"
        assert engine.interim == ""

        clock.now = 2.0
        await engine.check_silence()
        await engine.wait_delivered()
        await engine.close()

    asyncio.run(scenario())

    assert delivered == ["turn on the light"]


def test_manual_finalize_includes_pending_interim(clock):
    engine, _, delivered = _engine(clock)

    async def scenario():
        await engine.start()
        await engine.handle_result(CaptureEvent(finals=["hang a picture"], interim="with no"))
        text = await engine.finalize()
        await engine.wait_delivered()
        await engine.close()
        return text

    assert asyncio.run(scenario()) == "hang a picture with no"
    assert delivered == ["hang a picture with no"]


def test_silence_without_speech_never_finalizes(clock):
    engine, _, delivered = _engine(clock)

    async def scenario():
        await engine.start()
        clock.now = 30.0
        result = await engine.check_silence()
        await engine.close()
        return result

    assert asyncio.run(scenario()) is False
    assert delivered == []


def test_capture_end_while_listening_restarts(clock):
    engine, log, _ = _engine(clock)

    async def scenario():
        await engine.start()
        await engine.handle_error("network")
        await asyncio.sleep(0.01)
        await engine.handle_end()
        await asyncio.sleep(0.01)
        state = engine.state
        await engine.close()
        return state

    assert asyncio.run(scenario()) is TurnEngineState.LISTENING
    assert log.count("capture.start") == 3
    assert engine.restart_count == 2


def test_capture_end_while_idle_does_not_restart(clock):
    engine, log, _ = _engine(clock)

    async def scenario():
        await engine.handle_end()
        await engine.start()
        await engine.stop()
        await engine.handle_error("no-speech")
        await asyncio.sleep(0.01)

    asyncio.run(scenario())

    assert log.count("capture.start") == 1
    assert engine.restart_count == 0
    assert engine.state is TurnEngineState.IDLE


def test_barge_in_cancels_speech_before_capture(clock):
    engine, log, _ = _engine(clock)

    async def scenario():
        assert await engine.speak("Aisle A3, bin 14.") is True
        assert engine.state is TurnEngineState.SPEAKING
        await engine.start()
        state = engine.state
        await engine.close()
        return state

    assert asyncio.run(scenario()) is TurnEngineState.LISTENING
    assert log[:3] == ["speech.speak", "speech.cancel", "capture.start"]
    assert not engine.speech_active


def test_speech_end_rearms_when_requested(clock):
    engine, log, _ = _engine(clock)

    async def scenario():
        await engine.speak("Here you go.", listen_after=True)
        await engine.on_speech_end()
        state = engine.state
        await engine.close()
        return state

    assert asyncio.run(scenario()) is TurnEngineState.LISTENING
    assert "capture.start" in log


def test_missing_capture_degrades_to_text_only(clock):
    engine, log, _ = _engine(clock, capture=False)

    async def scenario():
        await engine.start()
        return await engine.finalize()

    assert asyncio.run(scenario()) is None
    assert engine.voice_available is False
    assert engine.state is TurnEngineState.IDLE
    assert log == []


def test_unrecoverable_error_disables_voice(clock):
    unavailable = []

    async def on_unavailable(reason):
        unavailable.append(reason)

    engine, log, _ = _engine(clock, on_unavailable=on_unavailable)

    async def scenario():
        await engine.start()
        await engine.handle_error("not-allowed")
        await engine.start()

    asyncio.run(scenario())

    assert unavailable == ["not-allowed"]
    assert engine.voice_available is False
    assert engine.state is TurnEngineState.IDLE
    assert log.count("capture.start") == 1


def test_background_poller_finalizes_after_silence():
    engine, _, delivered = _engine(
        time.monotonic,
        silence_threshold_ms=50,
        silence_poll_interval_ms=10,
    )

    async def scenario():
        await engine.start()
        await engine.handle_result(CaptureEvent(finals=["where are the monkey hooks"]))
        await asyncio.sleep(0.3)
        await engine.wait_delivered()
        await engine.close()

    asyncio.run(scenario())

    assert delivered == ["where are the monkey hooks"]


def test_state_changes_are_reported(clock):
    transitions = []

    async def on_state_change(previous, state):
        transitions.append((previous.value, state.value))

    engine, _, _ = _engine(clock, on_state_change=on_state_change)

    async def scenario():
        await engine.start()
        await engine.handle_result(CaptureEvent(finals=["hello"]))
        await engine.finalize()
        await engine.wait_delivered()

    asyncio.run(scenario())

    assert transitions == [
        ("idle", "listening"),
        ("listening", "finalizing"),
        ("finalizing", "idle"),
    ]
