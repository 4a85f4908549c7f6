import math
import logging
from dataclasses import dataclass

import pygame

import postfix

logger = logging.getLogger(__name__)

STEP = 1e-7 # central difference half-width


class NonFiniteResult(ArithmeticError):
    pass


@dataclass
class tangentSettings:
    lineColor: tuple = (255, 50, 50)
    markerColor: tuple = (255, 255, 0)
    markerRadius: int = 3


@dataclass(frozen=True)
class TangentResult:
    x0: float
    y0: float
    slope: float
    start: tuple # window-space line endpoints
    end: tuple
    point: tuple # window-space position of (x0, y0)


def finite(value):
    if not math.isfinite(value):
        raise NonFiniteResult(value)
    return value


def derivative(evaluable, x0, h=STEP):
    return (evaluable.evaluateAt(x0 + h) - evaluable.evaluateAt(x0 - h)) / (2 * h)


def markerPixels(center, radius=3):
    cx, cy = center
    return [
        (cx + i, cy + j)
        for i in range(-radius, radius + 1)
        for j in range(-radius, radius + 1)
        if i * i + j * j <= radius * radius
    ]


def probeTangent(expression, viewport, pointer, content):
    """Tangent of ``expression`` under the pointer, or None.

    ``pointer`` is in window coordinates and ``content`` is the window
    rectangle the graph image occupies. Nothing is returned when the
    pointer is outside that rectangle, when the expression does not
    compile, or when the value or slope at the pointer is not finite.
    """
    content = pygame.Rect(content)
    gx = pointer[0] - content.left
    gy = pointer[1] - content.top
    width, height = content.size
    if not (0 <= gx < width and 0 <= gy < height):
        return None
    try:
        evaluable = postfix.compileCached(expression)
    except postfix.ExpressionInvalid:
        return None
    x0, _ = viewport.toMath(gx, gy, width, height)
    try:
        y0 = finite(evaluable.evaluateAt(x0))
        slope = finite(derivative(evaluable, x0))
    except NonFiniteResult as e:
        logger.debug("no tangent at x=%g: %s", x0, e)
        return None

    xLeft, xRight = viewport.visibleXRange(width)

    def toWindow(x, y):
        px, py = viewport.toScreen(x, y, width, height)
        return px + content.left, py + content.top

    return TangentResult(
        x0,
        y0,
        slope,
        toWindow(xLeft, y0 + slope * (xLeft - x0)),
        toWindow(xRight, y0 + slope * (xRight - x0)),
        toWindow(x0, y0),
    )


def clipSegment(start, end, bounds):
    """Liang-Barsky clip of a float segment to ``bounds`` (left, top, right, bottom)."""
    left, top, right, bottom = bounds
    x1, y1 = start
    dx = end[0] - x1
    dy = end[1] - y1
    if not (math.isfinite(dx) and math.isfinite(dy)):
        return None
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, x1 - left), (dx, right - x1), (-dy, y1 - top), (dy, bottom - y1)):
        if p == 0:
            if q < 0:
                return None
            continue
        r = q / p
        if p < 0:
            t0 = max(t0, r)
        else:
            t1 = min(t1, r)
        if t0 > t1:
            return None
    return (x1 + t0 * dx, y1 + t0 * dy), (x1 + t1 * dx, y1 + t1 * dy)


def drawTangent(surface, result, settings=None):
    settings = settings or tangentSettings()
    width, height = surface.get_size()
    segment = clipSegment(result.start, result.end, (0, 0, width - 1, height - 1))
    if segment:
        pygame.draw.line(surface, settings.lineColor, *segment)
    px, py = result.point
    r = settings.markerRadius
    if not (-r <= px < width + r and -r <= py < height + r):
        return
    for x, y in markerPixels((round(px), round(py)), r):
        surface.set_at((x, y), settings.markerColor)
