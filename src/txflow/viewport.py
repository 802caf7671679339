"""
Viewport: pan/zoom transform and screen/world coordinate conversion.

``screen = world * k + (x, y)``. The transform is an immutable value object;
every operation replaces it rather than mutating it in place.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from txflow.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    RECENTER_DURATION,
    ZOOM_MAX,
    ZOOM_MIN,
)
from txflow.models import Point
from txflow.spend_tree import TransactionNode


@dataclass(frozen=True)
class Transform:
    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, point: Point) -> Point:
        return Point(point.x * self.k + self.x, point.y * self.k + self.y)

    def invert(self, point: Point) -> Point:
        return Point((point.x - self.x) / self.k, (point.y - self.y) / self.k)

    def translated(self, dx: float, dy: float) -> Transform:
        return Transform(self.x + dx, self.y + dy, self.k)

    def interpolate(self, other: Transform, t: float) -> Transform:
        return Transform(
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
            self.k + (other.k - self.k) * t,
        )

    def svg(self) -> str:
        return f"translate({self.x:g},{self.y:g}) scale({self.k:g})"


def ease_cubic_in_out(t: float) -> float:
    t = min(1.0, max(0.0, t))
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


@dataclass(frozen=True)
class Transition:
    start: Transform
    end: Transform
    started_at: float
    duration: float

    def at(self, now: float) -> Transform:
        if self.duration <= 0:
            return self.end
        return self.start.interpolate(self.end, ease_cubic_in_out(self.progress(now)))

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return min(1.0, max(0.0, (now - self.started_at) / self.duration))

    def done(self, now: float) -> bool:
        return self.progress(now) >= 1.0


class Viewport:
    def __init__(
        self,
        width: float = DEFAULT_CANVAS_WIDTH,
        height: float = DEFAULT_CANVAS_HEIGHT,
        k_min: float = ZOOM_MIN,
        k_max: float = ZOOM_MAX,
        clock: Callable[[], float] = time.monotonic,
    ):
        if k_min <= 0 or k_max < k_min:
            raise ValueError(f"Invalid zoom range: [{k_min}, {k_max}]")
        self.width = width
        self.height = height
        self.k_min = k_min
        self.k_max = k_max
        self._clock = clock
        self._transform = self.home()
        self._transition: Transition | None = None

    @property
    def transform(self) -> Transform:
        return self._transform

    @property
    def transition(self) -> Transition | None:
        return self._transition

    def home(self) -> Transform:
        """Canvas-centered translation at scale 1."""
        return Transform(self.width / 2, self.height / 2, 1.0)

    def set_transform(self, transform: Transform) -> None:
        self._transition = None
        self._transform = Transform(transform.x, transform.y, self._clamp(transform.k))

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def zoom(self, focal: Point, delta_scale: float) -> Transform:
        """
        Scale by ``delta_scale`` keeping ``focal`` (screen space) fixed.
        """
        if delta_scale <= 0:
            raise ValueError("delta_scale must be positive")
        self._transition = None
        current = self._transform
        k = self._clamp(current.k * delta_scale)
        ratio = k / current.k
        self._transform = Transform(
            focal.x - (focal.x - current.x) * ratio,
            focal.y - (focal.y - current.y) * ratio,
            k,
        )
        return self._transform

    def pan(self, delta: Point) -> Transform:
        self._transition = None
        self._transform = self._transform.translated(delta.x, delta.y)
        return self._transform

    def recenter(self, duration: float = RECENTER_DURATION, now: float | None = None) -> Transition:
        """Start an eased transition back to the home transform."""
        started = self._clock() if now is None else now
        self._transition = Transition(self._transform, self.home(), started, duration)
        if duration <= 0:
            self.advance(started)
        return self._transition

    def advance(self, now: float | None = None) -> Transform:
        """Step a running transition; returns the current transform."""
        if self._transition is None:
            return self._transform
        now = self._clock() if now is None else now
        self._transform = self._transition.at(now)
        if self._transition.done(now):
            self._transition = None
        return self._transform

    async def animate(self, frame_interval: float = 1 / 60) -> Transform:
        """Drive a running transition on the event loop until it finishes."""
        while self._transition is not None:
            self.advance()
            if self._transition is None:
                break
            await asyncio.sleep(frame_interval)
        logger.debug(f"Viewport settled at {self._transform}")
        return self._transform

    def drag_node(self, node: TransactionNode, delta: Point) -> Point:
        """
        Move a node by a screen-space delta.

        The delta is divided by the current scale so the node follows the
        pointer 1:1 on screen at any zoom level.
        """
        node.position = node.position + delta.scaled(1 / self._transform.k)
        return node.position

    def screen_to_world(self, point: Point) -> Point:
        return self._transform.invert(point)

    def world_to_screen(self, point: Point) -> Point:
        return self._transform.apply(point)

    def _clamp(self, k: float) -> float:
        return min(self.k_max, max(self.k_min, k))
