import pytest

from conftest import FakeAudio, FakeHaptic, make_frame
from depth_navigation.feedback_dispatcher import FeedbackDispatcher, ObstacleSnapshot, haptic_intensity
from depth_navigation.messages import MessageCatalog, MessageKey
from depth_navigation.navigation_session import ObstaclePipeline
from depth_navigation.notification_debouncer import NotificationDecision
from depth_navigation.obstacle_classifier import Direction, ObstacleState

CATALOG = MessageCatalog("en")


@pytest.mark.parametrize("distance,expected", [
    (0.0, 1.0), (2.5, 0.5), (5.0, 0.0), (7.5, 0.0), (0.8, 0.84), (None, 0.0), (-1.0, 1.0),
])
def test_haptic_intensity(distance, expected):
    assert haptic_intensity(distance) == pytest.approx(expected)


@pytest.fixture
def dispatcher(fake_audio, fake_haptic):
    return FeedbackDispatcher(fake_audio, fake_haptic, CATALOG)


@pytest.mark.parametrize("distance,message", [
    (0.5, CATALOG.get(MessageKey.VERY_CLOSE)),
    (1.0, "Obstacle detected at 1.0 meters"),
    (1.46, "Obstacle detected at 1.5 meters"),
    (1.99, "Obstacle detected at 2.0 meters"),
    (2.0, None),
    (4.0, None),
    (None, None),
])
def test_proximity_message_bands(dispatcher, distance, message):
    assert dispatcher.proximity_message(distance) == message


def test_haptic_fires_every_frame_even_without_announcements(dispatcher, fake_haptic, fake_audio):
    state = ObstacleState(Direction.CLEAR, 2.5)
    for _ in range(3):
        dispatcher.dispatch(state, NotificationDecision())
    assert fake_haptic.intensities == pytest.approx([0.5, 0.5, 0.5])
    assert fake_audio.messages == []


def test_messages_in_order(dispatcher, fake_audio):
    state = ObstacleState(Direction.LEFT, 1.2, lower_height_obstacle=True)
    dispatcher.dispatch(state, NotificationDecision(Direction.LEFT, lower_height=True))
    assert fake_audio.messages == [
        "Obstacle detected at 1.2 meters",
        CATALOG.get(MessageKey.DIRECTION_LEFT),
        CATALOG.get(MessageKey.LOWER_HEIGHT),
    ]


def test_audio_calls_are_not_suppressed_by_dispatcher(fake_haptic):
    audio = FakeAudio(accept=False)
    dispatcher = FeedbackDispatcher(audio, fake_haptic, CATALOG)
    state = ObstacleState(Direction.CENTER, 0.4)
    dispatcher.dispatch(state, NotificationDecision(Direction.CENTER))
    dispatcher.dispatch(state, NotificationDecision())
    assert len(audio.messages) == 3


def test_snapshot_published_to_listeners(dispatcher):
    received = []
    dispatcher.add_listener(received.append)
    dispatcher.dispatch(ObstacleState(Direction.RIGHT, 1.7, True), NotificationDecision())
    dispatcher.dispatch(ObstacleState(Direction.CLEAR, None, False), NotificationDecision())

    assert received[0] == ObstacleSnapshot(1.7, Direction.RIGHT, True)
    assert received[1] == ObstacleSnapshot(5.0, Direction.CLEAR, False)
    assert dispatcher.latest_snapshot == received[1]


def test_failing_listener_does_not_break_dispatch(dispatcher, fake_haptic):
    received = []

    def broken(snapshot):
        raise RuntimeError("display gone")

    dispatcher.add_listener(broken)
    dispatcher.add_listener(received.append)
    dispatcher.dispatch(ObstacleState(Direction.CLEAR, 3.0), NotificationDecision())
    assert len(received) == 1
    assert len(fake_haptic.intensities) == 1

    dispatcher.remove_listener(broken)
    dispatcher.dispatch(ObstacleState(Direction.CLEAR, 3.0), NotificationDecision())
    assert len(received) == 2


def test_missing_collaborators_are_tolerated():
    dispatcher = FeedbackDispatcher(None, None, CATALOG)
    dispatcher.dispatch(ObstacleState(Direction.CENTER, 0.3), NotificationDecision(Direction.CENTER))
    assert dispatcher.latest_snapshot.direction == Direction.CENTER


def test_end_to_end_close_center_obstacle():
    audio, haptic = FakeAudio(), FakeHaptic()
    pipeline = ObstaclePipeline(FeedbackDispatcher(audio, haptic, CATALOG))

    state = pipeline.process(make_frame(mid={"center": 0.8}))

    assert state.direction == Direction.CENTER
    assert state.center_distance == pytest.approx(0.8)
    assert state.lower_height_obstacle is False
    assert audio.messages == [CATALOG.get(MessageKey.VERY_CLOSE), CATALOG.get(MessageKey.DIRECTION_AHEAD)]
    assert haptic.intensities == [pytest.approx(0.84)]

    # Same obstacle again: proximity repeats (rate limiting is the audio handler's job), direction does not
    pipeline.process(make_frame(mid={"center": 0.8}))
    assert audio.messages[2:] == [CATALOG.get(MessageKey.VERY_CLOSE)]
