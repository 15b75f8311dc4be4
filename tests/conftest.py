from typing import Optional

import numpy as np
import pytest

from depth_navigation.depth_frame import DepthFrame

FRAME_WIDTH = 9
FRAME_HEIGHT = 8
MID_ROW = FRAME_HEIGHT // 2          # 4
LOWER_ROW = FRAME_HEIGHT * 3 // 4    # 6
COLUMNS = {"left": slice(0, 3), "center": slice(3, 6), "right": slice(6, 9)}


def make_depth(mid: Optional[dict] = None, lower: Optional[dict] = None,
               width: int = FRAME_WIDTH, height: int = FRAME_HEIGHT, fill: float = 0.0) -> np.ndarray:
    """
    Builds an HxW depth array filled with `fill` (invalid by default) and sets the
    mid/lower sample rows per region, e.g. mid={"center": 0.8}.
    """
    depth = np.full((height, width), fill, dtype=np.float32)
    for row, values in ((height // 2, mid or {}), (height * 3 // 4, lower or {})):
        for region, value in values.items():
            depth[row, COLUMNS[region]] = value
    return depth


def make_frame(**kwargs) -> DepthFrame:
    return DepthFrame.from_array(make_depth(**kwargs))


class FakeAudio:
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.messages = []

    def speak(self, message):
        self.messages.append(message)
        return self.accept


class FakeHaptic:
    def __init__(self):
        self.intensities = []

    def play_warning(self, intensity):
        self.intensities.append(intensity)


@pytest.fixture
def fake_audio():
    return FakeAudio()


@pytest.fixture
def fake_haptic():
    return FakeHaptic()
