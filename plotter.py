import os
import sys
import enum
import logging
import argparse
from dataclasses import dataclass

import pygame
import pygame.freetype

import grid
import postfix
import tangent
from camera import Viewport, NavigationController, FrameClock, navigationSettings
from logging_config import setupLogging

logger = logging.getLogger(__name__)

DEFAULT_FUNCTION = "x^2"


def getResourcePath(relativePath):
    """Absolute path of a bundled resource, resolved next to this file."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), relativePath)


FONT_PATH = None # None selects pygame's bundled font
SAMPLE_IMAGE_PATH = getResourcePath(os.path.join("resources", "sample.png"))


class ResourceLoadFailure(RuntimeError):
    """A resource the window cannot run without failed to load."""


class ViewMode(enum.Enum):
    GRAPH = "graph"
    DEMO = "demo"
    IMAGE = "image"


class FontId(enum.Enum):
    BODY = 0


@dataclass
class layoutSettings:
    windowSize: tuple = (800, 600)
    padding: int = 16
    chromeTop: int = 80 # title and hint above the graph
    chromeBottom: int = 40 # function line below the graph
    background: tuple = (224, 215, 210)
    textColor: tuple = (50, 50, 50)
    hintColor: tuple = (100, 100, 100)
    titleSize: int = 32
    hintSize: int = 16
    footerSize: int = 20
    imageAspect: float = 23 / 42
    framerate: int = 60


HINT = "WASD to pan • Z/X to zoom • Space to toggle • Hover for tangent • Enter to edit"


def contentRect(windowSize, layout):
    """Window rectangle the graph image is drawn into."""
    w, h = windowSize
    p = layout.padding
    return pygame.Rect(
        p,
        p + layout.chromeTop,
        w - 2 * p,
        h - 2 * p - layout.chromeTop - layout.chromeBottom,
    )


class viewCycle:
    # Space walks graph -> demo -> image -> demo -> graph
    order = (ViewMode.GRAPH, ViewMode.DEMO, ViewMode.IMAGE, ViewMode.DEMO)

    def __init__(self):
        self.index = 0

    @property
    def mode(self):
        return self.order[self.index]

    def advance(self):
        self.index = (self.index + 1) % len(self.order)
        logger.debug("view mode is now %s", self.mode.value)
        return self.mode


class TextureCache:
    """Holds the one rendered graph image and knows when it is out of date."""

    def __init__(self, renderer=None):
        self.renderer = renderer or grid.grid()
        self.image = None
        self.dirty = True

    def invalidate(self):
        self.dirty = True

    def refresh(self, request, font=None):
        """Rebuild the image for ``request``.

        On failure the previous image stays in place and False is returned.
        The dirty flag is cleared either way, so a bad expression is
        reported once rather than every frame.
        """
        self.dirty = False
        try:
            surface = self.renderer.render(request, font)
        except postfix.ExpressionInvalid as e:
            logger.warning("Expression error in %r: %s", request.expression, e)
            return False
        except grid.AllocationFailure as e:
            logger.error("Graph rebuild aborted: %s", e)
            return False
        if pygame.display.get_surface() is not None:
            surface = surface.convert()
        self.release()
        self.image = surface
        return True

    def release(self):
        self.image = None


class FunctionEditor:
    def __init__(self):
        self.active = False
        self.text = ""

    def begin(self, current):
        self.active = True
        self.text = current
        pygame.key.start_text_input()

    def end(self):
        self.active = False
        pygame.key.stop_text_input()

    def handle(self, event):
        """Feed an event; returns the new function text once it is committed."""
        if event.type == pygame.TEXTINPUT:
            self.text += event.text
        elif event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self.end()
                return self.text.strip()
            if event.key == pygame.K_ESCAPE:
                self.end()
            elif event.key == pygame.K_BACKSPACE:
                self.text = self.text[:-1]
        return None


class GraphContext:
    """Owns the window, fonts, sample image and the cached graph.

    Everything acquired in ``open`` is given back in ``close``; use the
    context as a ``with`` block so that happens on every exit path.
    """

    def __init__(self, function=DEFAULT_FUNCTION, fontPath=FONT_PATH,
                 imagePath=SAMPLE_IMAGE_PATH, layout=None, navigation=None):
        self.function = function
        self.fontPath = fontPath
        self.imagePath = imagePath
        self.layout = layout or layoutSettings()
        self.viewport = Viewport()
        self.navigation = NavigationController(self.viewport, navigation or navigationSettings())
        self.clock = FrameClock(self.navigation.settings.maxFrameTime)
        self.cache = TextureCache()
        self.views = viewCycle()
        self.editor = FunctionEditor()
        self.fonts = {}
        self.sampleImage = None
        self.screen = None
        self.pointer = (0, 0)
        self.pointerInside = False

    def __enter__(self):
        try:
            self.open()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def open(self):
        pygame.init()
        try:
            pygame.freetype.init()
        except pygame.error as e:
            raise ResourceLoadFailure(f"Failed to start the text engine: {e}") from e
        try:
            self.screen = pygame.display.set_mode(self.layout.windowSize, pygame.RESIZABLE)
        except pygame.error as e:
            raise ResourceLoadFailure(f"Failed to create window: {e}") from e
        pygame.display.set_caption("Graph Plotter")
        try:
            self.fonts[FontId.BODY] = pygame.freetype.Font(self.fontPath, self.layout.hintSize)
        except (OSError, pygame.error) as e:
            raise ResourceLoadFailure(f"Failed to load font {self.fontPath!r}: {e}") from e
        self.sampleImage = self.loadImage(self.imagePath)
        logger.info("Plotting f(x) = %s", self.function)

    def loadImage(self, path):
        try:
            return pygame.image.load(path).convert_alpha()
        except (OSError, pygame.error) as e:
            logger.error("Failed to load image %s: %s", path, e)
            return None

    def close(self):
        self.cache.release()
        self.sampleImage = None
        self.fonts.clear()
        self.screen = None
        if pygame.freetype.was_init():
            pygame.freetype.quit()
        pygame.quit()

    @property
    def font(self):
        return self.fonts[FontId.BODY]

    def content(self):
        return contentRect(self.screen.get_size(), self.layout)

    def setFunction(self, text):
        if not text or text == self.function:
            return
        logger.info("Plotting f(x) = %s", text)
        self.function = text
        self.cache.invalidate()

    def dispatchEvents(self, events):
        running = True
        for event in events:
            if event.type == pygame.QUIT:
                running = False
                break
            if event.type in (pygame.VIDEORESIZE, pygame.WINDOWRESIZED):
                self.cache.invalidate()
                continue
            if self.editor.active:
                self.setFunction(self.editor.handle(event))
                continue
            if event.type == pygame.MOUSEMOTION:
                self.pointer = event.pos
                self.pointerInside = True
            elif event.type == pygame.WINDOWLEAVE:
                self.pointerInside = False
            elif event.type == pygame.KEYUP and event.key == pygame.K_SPACE:
                self.views.advance()
            elif event.type == pygame.KEYDOWN and event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                if self.views.mode is ViewMode.GRAPH:
                    self.editor.begin(self.function)
        return running

    def rebuild(self):
        content = self.content()
        request = grid.GraphRequest(self.function, self.viewport.snapshot(), content.width, content.height)
        return self.cache.refresh(request, self.font)

    def update(self, dt, pressed=None):
        if self.views.mode is not ViewMode.GRAPH:
            return
        if not self.editor.active:
            if pressed is None:
                pressed = pygame.key.get_pressed()
            if self.navigation.update(pressed, dt):
                self.cache.invalidate()
        if self.cache.dirty:
            self.rebuild()

    def drawGraphView(self):
        layout = self.layout
        p = layout.padding
        self.screen.fill(layout.background)
        self.font.render_to(self.screen, (p, p), f"Graph Plotter: {self.function}",
                            layout.textColor, size=layout.titleSize)
        self.font.render_to(self.screen, (p, p + layout.titleSize + p), HINT,
                            layout.hintColor, size=layout.hintSize)
        content = self.content()
        if self.cache.image is not None:
            self.screen.blit(self.cache.image, content.topleft, pygame.Rect((0, 0), content.size))
        if self.editor.active:
            footer = f"f(x) = {self.editor.text}_"
        else:
            footer = f"f(x) = {self.function}"
        self.font.render_to(self.screen, (p, content.bottom + p // 2), footer,
                            layout.textColor, size=layout.footerSize)
        if self.pointerInside:
            result = tangent.probeTangent(self.function, self.viewport, self.pointer, content)
            if result is not None:
                tangent.drawTangent(self.screen, result)

    def drawDemoView(self):
        width, height = self.screen.get_size()
        p = self.layout.padding
        self.screen.fill((43, 41, 51))
        header = pygame.Rect(p, p, width - 2 * p, 60)
        sidebar = pygame.Rect(p, header.bottom + p, 250, height - header.bottom - 2 * p)
        main = pygame.Rect(sidebar.right + p, sidebar.top, width - sidebar.right - 2 * p, sidebar.height)
        for rect in (header, sidebar, main):
            pygame.draw.rect(self.screen, (90, 90, 90), rect, border_radius=8)
        self.font.render_to(self.screen, (header.left + p, header.top + p), "Layout demo",
                            (255, 255, 255), size=24)
        for i, name in enumerate(("Squirrels", "Lorem Ipsum", "Vacuum Instructions", "Article 4", "Article 5")):
            item = pygame.Rect(sidebar.left + p, sidebar.top + p + i * 56, sidebar.width - 2 * p, 44)
            pygame.draw.rect(self.screen, (120, 120, 120) if i else (120, 120, 140), item, border_radius=8)
            self.font.render_to(self.screen, (item.left + p, item.top + 14), name, (255, 255, 255), size=18)
        self.font.render_to(self.screen, (main.left + p, main.top + p), "Press Space to continue",
                            (255, 255, 255), size=20)

    def drawImageView(self):
        width, height = self.screen.get_size()
        p = self.layout.padding
        area = pygame.Rect(p, p, width - 2 * p, height - 2 * p)
        self.screen.fill(self.layout.background)
        if self.sampleImage is None:
            self.font.render_to(self.screen, (p, p), "No sample image", self.layout.textColor, size=20)
            return
        h = area.height
        w = round(h * self.layout.imageAspect)
        if w > area.width:
            w = area.width
            h = round(w / self.layout.imageAspect)
        if w <= 0 or h <= 0:
            return
        scaled = pygame.transform.smoothscale(self.sampleImage, (w, h))
        self.screen.blit(scaled, scaled.get_rect(center=area.center))

    def draw(self):
        mode = self.views.mode
        if mode is ViewMode.GRAPH:
            self.drawGraphView()
        elif mode is ViewMode.DEMO:
            self.drawDemoView()
        else:
            self.drawImageView()

    def frame(self):
        self.update(self.clock.tick())
        self.draw()
        pygame.display.flip()

    def run(self):
        limiter = pygame.time.Clock()
        running = True
        while running:
            running = self.dispatchEvents(pygame.event.get())
            if running:
                self.frame()
                limiter.tick(self.layout.framerate)


def parseArgs(argv=None):
    parser = argparse.ArgumentParser(prog="plotter", description="Interactive function plotter.")
    parser.add_argument("--func", default="", help="expression in x, e.g. --func='sin(x)/x'")
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        logger.debug("ignoring arguments %s", unknown)
    if not args.func:
        args.func = DEFAULT_FUNCTION
    return args


def main(argv=None):
    setupLogging(logging.INFO)
    args = parseArgs(argv)
    try:
        with GraphContext(args.func) as context:
            context.run()
    except ResourceLoadFailure as e:
        logger.critical("%s", e)
        logger.error("Application failed to run")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
