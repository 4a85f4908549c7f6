import math
from dataclasses import dataclass, replace

import pygame


@dataclass
class navigationSettings:
    panSpeed: float = 5.0 # math units per second
    zoomRate: float = 1.5 # exponent per second
    scaleMin: float = 10.0
    scaleMax: float = 500.0
    maxFrameTime: float = 0.1 # seconds; longer stalls are truncated
    keyLeft: int = pygame.K_a
    keyRight: int = pygame.K_d
    keyUp: int = pygame.K_w
    keyDown: int = pygame.K_s
    keyZoomIn: int = pygame.K_z
    keyZoomOut: int = pygame.K_x


@dataclass
class Viewport:
    """Camera over math space.

    ``cx``/``cy`` is the math point shown at the middle of the target,
    ``xScale``/``yScale`` are pixels per math unit. Screen y grows downward,
    math y grows upward.
    """
    cx: float = 0.0
    cy: float = 0.0
    xScale: float = 50.0
    yScale: float = 50.0

    def toScreen(self, x, y, width, height):
        px = width / 2 + (x - self.cx) * self.xScale
        py = height / 2 - (y - self.cy) * self.yScale
        return px, py

    def toMath(self, px, py, width, height):
        x = self.cx + (px - width / 2) / self.xScale
        y = self.cy - (py - height / 2) / self.yScale
        return x, y

    def visibleHalfWidth(self, width):
        return (width / 2) / self.xScale

    def visibleHalfHeight(self, height):
        return (height / 2) / self.yScale

    def visibleXRange(self, width):
        half = self.visibleHalfWidth(width)
        return self.cx - half, self.cx + half

    def visibleYRange(self, height):
        half = self.visibleHalfHeight(height)
        return self.cy - half, self.cy + half

    def snapshot(self):
        return replace(self)


class FrameClock:
    def __init__(self, maxFrameTime=0.1, ticks=pygame.time.get_ticks):
        self.maxFrameTime = maxFrameTime
        self.ticks = ticks
        self.last = 0

    def tick(self):
        now = self.ticks()
        dt = (now - self.last) / 1000
        self.last = now
        return min(dt, self.maxFrameTime)


class NavigationController:
    """Turns held keys into continuous pan and zoom of a viewport."""

    def __init__(self, viewport, settings=None):
        self.viewport = viewport
        self.settings = settings or navigationSettings()
        self.velocity = (0.0, 0.0)

    def getVelocity(self, pressed):
        s = self.settings
        vx = vy = 0.0
        if pressed[s.keyLeft]:
            vx -= s.panSpeed
        if pressed[s.keyRight]:
            vx += s.panSpeed
        if pressed[s.keyUp]:
            vy += s.panSpeed
        if pressed[s.keyDown]:
            vy -= s.panSpeed
        return vx, vy

    def getScaleFactor(self, pressed, dt):
        s = self.settings
        factor = 1.0
        zoomed = False
        if pressed[s.keyZoomIn]:
            factor *= math.exp(s.zoomRate * dt)
            zoomed = True
        if pressed[s.keyZoomOut]:
            factor *= math.exp(-s.zoomRate * dt)
            zoomed = True
        return factor, zoomed

    def pan(self, dt):
        self.viewport.cx += self.velocity[0] * dt
        self.viewport.cy += self.velocity[1] * dt

    def zoom(self, factor):
        s = self.settings
        v = self.viewport
        v.xScale = min(max(v.xScale * factor, s.scaleMin), s.scaleMax)
        v.yScale = min(max(v.yScale * factor, s.scaleMin), s.scaleMax)

    def update(self, pressed, dt):
        """Apply one frame of navigation; returns True if a redraw is due.

        ``pressed`` is anything indexable by pygame key constants, normally
        ``pygame.key.get_pressed()``. A held zoom key always requests a
        redraw, even when the scale is already pinned at a limit.
        """
        dt = min(dt, self.settings.maxFrameTime)
        self.velocity = self.getVelocity(pressed)
        self.pan(dt)
        factor, zoomed = self.getScaleFactor(pressed, dt)
        if zoomed:
            self.zoom(factor)
        return self.velocity != (0.0, 0.0) or zoomed
