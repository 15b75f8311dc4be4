import pytest

from depth_navigation.audio_feedback import AudioFeedbackHandler, SpeechRateLimiter


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeVoice:
    def __init__(self, voice_id, languages=()):
        self.id = voice_id
        self.languages = list(languages)


class FakeEngine:
    def __init__(self, voices=()):
        self.properties = {"voices": list(voices)}
        self.spoken = []
        self.stopped = False

    def setProperty(self, name, value):
        self.properties[name] = value

    def getProperty(self, name):
        return self.properties.get(name)

    def say(self, message):
        self.spoken.append(message)

    def runAndWait(self):
        pass

    def stop(self):
        self.stopped = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def handler(engine, clock):
    handler = AudioFeedbackHandler(rate=150, volume=0.8, rate_limiter=SpeechRateLimiter(2.0, clock),
                                   engine_factory=lambda: engine)
    yield handler
    handler.stop()


def test_rate_limiter_drops_within_window(clock):
    limiter = SpeechRateLimiter(2.0, clock)
    assert limiter.try_acquire()        # "A" at 0.0
    clock.now = 0.5
    assert not limiter.try_acquire()    # "B" suppressed
    clock.now = 2.5
    assert limiter.try_acquire()        # "C" voiced


def test_rate_limiter_window_is_measured_from_last_voiced(clock):
    limiter = SpeechRateLimiter(2.0, clock)
    limiter.try_acquire()
    clock.now = 1.9
    assert not limiter.try_acquire()
    clock.now = 2.0
    assert limiter.try_acquire()
    clock.now = 3.0
    assert not limiter.try_acquire()
    limiter.reset()
    assert limiter.try_acquire()


def test_engine_configured(handler, engine):
    assert handler.available
    assert engine.properties["rate"] == 150
    assert engine.properties["volume"] == 0.8


def test_speak_is_rate_limited(handler, engine, clock):
    assert handler.speak("A")
    clock.now = 0.5
    assert not handler.speak("B")
    clock.now = 2.5
    assert handler.speak("C")

    assert handler.wait_until_idle(timeout=5.0)
    assert engine.spoken == ["A", "C"]


def test_blank_messages_are_ignored(handler, engine):
    assert not handler.speak("   ")
    assert not handler.speak(None)
    assert handler.wait_until_idle(timeout=5.0)
    assert engine.spoken == []


def test_unavailable_engine_is_silent(clock):
    def broken_factory():
        raise RuntimeError("no speech driver")

    handler = AudioFeedbackHandler(rate_limiter=SpeechRateLimiter(2.0, clock), engine_factory=broken_factory)
    assert not handler.available
    assert not handler.speak("hello")
    handler.stop()


def test_speak_after_stop_is_dropped(handler):
    handler.stop()
    assert not handler.speak("late message")


def test_voice_selected_by_language(clock):
    engine = FakeEngine(voices=[FakeVoice("english"), FakeVoice("italian", languages=["it-IT"])])
    handler = AudioFeedbackHandler(voice_language="it", rate_limiter=SpeechRateLimiter(2.0, clock),
                                   engine_factory=lambda: engine)
    assert engine.properties["voice"] == "italian"
    handler.stop()


def test_force_stop_discards_pending(handler, engine):
    handler.force_stop()
    assert handler.wait_until_idle(timeout=5.0)
    assert engine.spoken == []
