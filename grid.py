import math
import logging
from dataclasses import dataclass, field

import pygame

import postfix
from camera import Viewport

logger = logging.getLogger(__name__)


class AllocationFailure(RuntimeError):
    """An offscreen surface for the graph could not be created."""


@dataclass
class gridSettings:
    backgroundColor: tuple = (0, 0, 0)
    lineColor: tuple = (40, 40, 40) # gridlines
    axisColor: tuple = (160, 160, 160)
    curveColor: tuple = (0, 255, 0)
    labelColor: tuple = (200, 200, 200)
    curveWidth: int = 1
    targetSpacing: float = 80.0 # desired pixels between gridlines
    labelPad: int = 4
    labelScale: int = 14
    originEpsilon: float = 1e-9 # ticks closer than this to 0 get no label
    coordinateLimit: float = 1e6 # screen coordinates are clamped to +/- this


@dataclass(frozen=True)
class GraphRequest:
    expression: str
    viewport: Viewport
    width: int
    height: int


@dataclass
class gridPlan:
    xStep: float
    yStep: float
    xTicks: list = field(default_factory=list)
    yTicks: list = field(default_factory=list)


def chooseStep(scale, target=80.0):
    """Pick a 1x or 2x power-of-ten spacing near ``target`` px.

    The step starts at the largest power of ten whose spacing is at most
    ``target`` px and is doubled when that spacing is under ``target / 2``,
    so gridlines end up roughly 16 to 80 px apart at the default target.
    """
    step = 10.0 ** math.floor(math.log10(target / scale))
    if step * scale < target / 2:
        step *= 2
    if step * scale > target * 2:
        step /= 2
    return step


def enumerateLines(lo, hi, step):
    start = math.floor(lo / step)
    end = math.ceil(hi / step)
    if start * step > lo:
        start -= 1
    if end * step < hi:
        end += 1
    # by index so that long runs don't accumulate rounding
    return [i * step for i in range(start, end + 1)]


def planGrid(viewport, width, height, target=80.0):
    xStep = chooseStep(viewport.xScale, target)
    yStep = chooseStep(viewport.yScale, target)
    return gridPlan(
        xStep,
        yStep,
        enumerateLines(*viewport.visibleXRange(width), xStep),
        enumerateLines(*viewport.visibleYRange(height), yStep),
    )


def formatTick(value):
    return f"{value:.6g}"


def isOrigin(value, epsilon=1e-9):
    return abs(value) < epsilon


def clampBox(x, y, size, canvas):
    w, h = size
    width, height = canvas
    if x < 0:
        x = 0
    if x + w > width:
        x = width - w
    if y < 0:
        y = 0
    if y + h > height:
        y = height - h
    return x, y


def placeXLabel(px, axisY, size, canvas, pad=4):
    """Top-left corner for a label of the x axis tick at screen column ``px``.

    Labels hang just below the x axis. When the axis is scrolled off the
    canvas they stick to the nearest horizontal edge instead.
    """
    w, h = size
    height = canvas[1]
    if 0 <= axisY <= height:
        y = axisY + pad
        if y + 1 > height - pad:
            y = height - pad - h
    elif axisY < 0:
        y = pad
    else:
        y = height - pad - h
    return clampBox(round(px) - w // 2, y, size, canvas)


def placeYLabel(py, axisX, size, canvas, pad=4):
    w, h = size
    width = canvas[0]
    if 0 <= axisX <= width:
        x = axisX + pad
        if x + 1 > width - pad:
            x = width - pad - w
    elif axisX < 0:
        x = pad
    else:
        x = width - pad - w
    return clampBox(x, round(py) - h // 2, size, canvas)


def clampCoordinate(value, limit):
    return min(max(value, -limit), limit)


def sampleCurve(evaluable, viewport, width, height, limit=1e6):
    """Sample one point per pixel column; returns a list of polylines.

    The curve is cut wherever a sample is not finite, so poles and holes
    in the domain leave gaps. Finite samples far off the canvas are
    clamped to ``limit`` pixels.
    """
    if width < 2:
        return []
    xMin, xMax = viewport.visibleXRange(width)
    paths = []
    path = []
    for i in range(width):
        t = i / (width - 1)
        x = xMin + t * (xMax - xMin)
        y = evaluable.evaluateAt(x)
        if not math.isfinite(y):
            if path:
                paths.append(path)
            path = []
            continue
        px, py = viewport.toScreen(x, y, width, height)
        path.append((clampCoordinate(px, limit), clampCoordinate(py, limit)))
    if path:
        paths.append(path)
    return paths


def rasterize(expression, viewport, width, height, limit=1e6):
    evaluable = postfix.compileCached(expression)
    return sampleCurve(evaluable, viewport, width, height, limit)


class grid:
    def __init__(self, settings=None):
        self.settings = settings or gridSettings()

    def drawGridlines(self, surface, viewport, plan):
        width, height = surface.get_size()
        for x in plan.xTicks:
            top = viewport.toScreen(x, plan.yTicks[-1], width, height)
            bottom = viewport.toScreen(x, plan.yTicks[0], width, height)
            pygame.draw.line(surface, self.settings.lineColor, top, bottom)
        for y in plan.yTicks:
            left = viewport.toScreen(plan.xTicks[0], y, width, height)
            right = viewport.toScreen(plan.xTicks[-1], y, width, height)
            pygame.draw.line(surface, self.settings.lineColor, left, right)

    def drawAxes(self, surface, viewport):
        width, height = surface.get_size()
        limit = self.settings.coordinateLimit
        originX, originY = viewport.toScreen(0.0, 0.0, width, height)
        if -limit < originY < limit:
            pygame.draw.line(surface, self.settings.axisColor, (0, originY), (width, originY))
        if -limit < originX < limit:
            pygame.draw.line(surface, self.settings.axisColor, (originX, 0), (originX, height))

    def plotPath(self, surface, path):
        if len(path) < 2:
            return
        pygame.draw.lines(surface, self.settings.curveColor, False, path, self.settings.curveWidth)

    def labelAxes(self, surface, viewport, plan, font):
        canvas = surface.get_size()
        width, height = canvas
        s = self.settings
        originX, originY = viewport.toScreen(0.0, 0.0, width, height)
        axisX, axisY = int(originX), int(originY)
        for x in plan.xTicks:
            if isOrigin(x, s.originEpsilon):
                continue
            label, _ = font.render(formatTick(x), s.labelColor, size=s.labelScale)
            px, _ = viewport.toScreen(x, 0.0, width, height)
            position = placeXLabel(px, axisY, label.get_size(), canvas, s.labelPad)
            surface.blit(label, position)
        for y in plan.yTicks:
            if isOrigin(y, s.originEpsilon):
                continue
            label, _ = font.render(formatTick(y), s.labelColor, size=s.labelScale)
            _, py = viewport.toScreen(0.0, y, width, height)
            position = placeYLabel(py, axisX, label.get_size(), canvas, s.labelPad)
            surface.blit(label, position)

    def allocate(self, width, height):
        if width <= 0 or height <= 0:
            raise AllocationFailure(f"cannot allocate a {width}x{height} graph surface")
        try:
            return pygame.Surface((width, height))
        except (pygame.error, ValueError, MemoryError) as e:
            raise AllocationFailure(f"cannot allocate a {width}x{height} graph surface: {e}") from e

    def render(self, request, font=None):
        """Draw grid, axes, curve and labels for ``request`` into a new surface.

        The expression is compiled before anything is allocated, so an
        invalid one raises ``postfix.ExpressionInvalid`` and leaves no
        half-drawn surface behind.
        """
        evaluable = postfix.compileCached(request.expression)
        surface = self.allocate(request.width, request.height)
        viewport = request.viewport
        plan = planGrid(viewport, request.width, request.height, self.settings.targetSpacing)
        surface.fill(self.settings.backgroundColor)
        self.drawGridlines(surface, viewport, plan)
        self.drawAxes(surface, viewport)
        paths = sampleCurve(evaluable, viewport, request.width, request.height, self.settings.coordinateLimit)
        for path in paths:
            self.plotPath(surface, path)
        if font is not None:
            self.labelAxes(surface, viewport, plan, font)
        logger.debug("rendered %r at %dx%d (%d segments)", request.expression, request.width, request.height, len(paths))
        return surface
