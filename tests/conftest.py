import os
import sys
from pathlib import Path

# headless SDL before pygame is imported anywhere
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pygame
import pygame.freetype
import pytest


@pytest.fixture
def font():
    pygame.init()
    pygame.freetype.init()
    yield pygame.freetype.Font(None, 14)
    pygame.freetype.quit()


@pytest.fixture
def nokeys():
    from collections import defaultdict
    return defaultdict(bool)


@pytest.fixture
def held():
    from collections import defaultdict

    def make(*keys):
        return defaultdict(bool, {key: True for key in keys})
    return make
