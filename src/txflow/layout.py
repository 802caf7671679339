"""
Flow layout engine.

Turns one transaction into drawable geometry: inputs converge from the left
onto a shared centerline at x=0, outputs (and the fee, appended last) diverge
to the right. Every line is a cubic curve whose stroke width is proportional
to its value.

The layout is a pure function of ``(record, global_max_value, config,
outspends)``. There is no incremental update; callers recompute the whole
node whenever any of those inputs change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from txflow.constants import (
    CONTROL_POINT_FAR,
    CONTROL_POINT_NEAR,
    SPEND_MARKER_GAP,
    SPEND_MARKER_HEIGHT,
    SPEND_MARKER_WIDTH,
)
from txflow.models import (
    EntityKind,
    FeeEntity,
    OutspendInfo,
    Point,
    TransactionRecord,
    TxInput,
    TxOutput,
)
from txflow.scaler import scale


class LayoutConfig(BaseModel):
    """The four user-adjustable layout parameters."""

    model_config = ConfigDict(frozen=True)

    thickness_ratio: float = Field(default=1.0, ge=0.5, le=2.0)
    line_spacing: float = Field(default=10.0, ge=0.0, le=50.0, description="Gap in px")
    line_length: float = Field(default=400.0, ge=200.0, le=1500.0, description="Width in px")
    min_line_thickness: float = Field(default=0.1, ge=0.1, le=5.0)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def contains(self, point: Point) -> bool:
        return (
            self.x <= point.x <= self.x + self.width and self.y <= point.y <= self.y + self.height
        )

    def padded(self, amount: float) -> Rect:
        return Rect(
            self.x - amount, self.y - amount, self.width + 2 * amount, self.height + 2 * amount
        )

    @classmethod
    def around(cls, points: list[Point]) -> Rect:
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return cls(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


@dataclass(frozen=True)
class CubicCurve:
    start: Point
    c1: Point
    c2: Point
    end: Point

    def point_at(self, t: float) -> Point:
        u = 1.0 - t
        a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
        return Point(
            a * self.start.x + b * self.c1.x + c * self.c2.x + d * self.end.x,
            a * self.start.y + b * self.c1.y + c * self.c2.y + d * self.end.y,
        )

    def bounds(self) -> Rect:
        # A cubic never leaves the hull of its control polygon
        return Rect.around([self.start, self.c1, self.c2, self.end])

    def path_data(self) -> str:
        """SVG path ``d`` attribute."""
        return (
            f"M {self.start.x:g},{self.start.y:g} "
            f"C {self.c1.x:g},{self.c1.y:g} {self.c2.x:g},{self.c2.y:g} "
            f"{self.end.x:g},{self.end.y:g}"
        )


@dataclass(frozen=True)
class Drawable:
    kind: EntityKind
    index: int
    entity: TxInput | TxOutput | FeeEntity
    curve: CubicCurve
    stroke_width: float
    hit_region: Rect

    @property
    def color_class(self) -> str:
        return self.kind.value

    @property
    def value(self) -> int:
        return self.entity.value

    def hits(self, point: Point, tolerance: float = 2.0, samples: int = 32) -> bool:
        """True if ``point`` (node-local) lies on the stroke."""
        if not self.hit_region.padded(tolerance).contains(point):
            return False
        reach = self.stroke_width / 2 + tolerance
        for step in range(samples + 1):
            p = self.curve.point_at(step / samples)
            if (p.x - point.x) ** 2 + (p.y - point.y) ** 2 <= reach * reach:
                return True
        return False


@dataclass(frozen=True)
class SpendMarker:
    """Clickable affordance on a spent output; clicking expands the spender."""

    output_index: int
    spending_txid: str | None
    rect: Rect


@dataclass(frozen=True)
class NodeLayout:
    drawables: tuple[Drawable, ...]
    markers: tuple[SpendMarker, ...]
    anchor: Point
    input_span: float
    output_span: float
    center_height: float
    line_length: float = field(default=0.0)

    def by_kind(self, kind: EntityKind) -> list[Drawable]:
        return [d for d in self.drawables if d.kind == kind]

    def marker_for(self, output_index: int) -> SpendMarker | None:
        for marker in self.markers:
            if marker.output_index == output_index:
                return marker
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "anchor": [self.anchor.x, self.anchor.y],
            "input_span": self.input_span,
            "output_span": self.output_span,
            "center_height": self.center_height,
            "drawables": [
                {
                    "kind": d.kind.value,
                    "index": d.index,
                    "value": d.value,
                    "stroke_width": d.stroke_width,
                    "color_class": d.color_class,
                    "path": d.curve.path_data(),
                }
                for d in self.drawables
            ],
            "markers": [
                {
                    "output_index": m.output_index,
                    "spending_txid": m.spending_txid,
                    "rect": [m.rect.x, m.rect.y, m.rect.width, m.rect.height],
                }
                for m in self.markers
            ],
        }


def stack_span(thicknesses: list[float], spacing: float) -> float:
    """Height of a stack of lines separated by ``spacing``."""
    if not thicknesses:
        return 0.0
    return sum(thicknesses) + (len(thicknesses) - 1) * spacing


def stack_centers(thicknesses: list[float], spacing: float) -> list[float]:
    """
    Vertical centers of each line at the open end of a stack.

    The stack is centered on y=0: it starts at ``-span/2`` and each line
    takes its thickness plus ``spacing`` before the next.
    """
    y = -stack_span(thicknesses, spacing) / 2
    centers = []
    for thickness in thicknesses:
        centers.append(y + thickness / 2)
        y += thickness + spacing
    return centers


def packed_centers(thicknesses: list[float], offset: float) -> list[float]:
    """Vertical centers of lines packed edge to edge, starting at ``offset``."""
    centers = []
    y = offset
    for thickness in thicknesses:
        centers.append(y + thickness / 2)
        y += thickness
    return centers


def compute_layout(
    record: TransactionRecord,
    global_max_value: float,
    config: LayoutConfig,
    outspends: OutspendInfo | None = None,
) -> NodeLayout:
    """
    Lay out one transaction in node-local coordinates.

    Args:
        record: Transaction to draw
        global_max_value: Largest value across the whole scene
        config: Layout parameters
        outspends: Resolved spend status per output, None while pending

    Returns:
        NodeLayout with drawables ordered inputs, outputs, fee
    """

    def thickness(value: int) -> float:
        return scale(
            value, global_max_value, config.thickness_ratio, config.min_line_thickness
        )

    input_thicknesses = [thickness(i.value) for i in record.vin]
    output_thicknesses = [thickness(o.value) for o in record.vout]
    fee = record.fee_entity()
    right_thicknesses = list(output_thicknesses)
    if fee is not None:
        right_thicknesses.append(thickness(fee.value))

    half = config.line_length / 2
    near = half * CONTROL_POINT_NEAR
    far = half * CONTROL_POINT_FAR

    # Lines meet at x=0 packed edge to edge, both sides centered on the taller
    center_height = max(sum(input_thicknesses), sum(right_thicknesses))
    center_offset = -center_height / 2

    drawables: list[Drawable] = []

    input_ends = stack_centers(input_thicknesses, config.line_spacing)
    input_mids = packed_centers(input_thicknesses, center_offset)
    for i, tx_in in enumerate(record.vin):
        start_y, mid_y = input_ends[i], input_mids[i]
        curve = CubicCurve(
            start=Point(-half, start_y),
            c1=Point(-near, start_y),
            c2=Point(-far, mid_y),
            end=Point(0.0, mid_y),
        )
        drawables.append(_drawable(EntityKind.INPUT, i, tx_in, curve, input_thicknesses[i]))

    right_entities: list[tuple[EntityKind, int, TxOutput | FeeEntity]] = [
        (EntityKind.OUTPUT, i, tx_out) for i, tx_out in enumerate(record.vout)
    ]
    if fee is not None:
        right_entities.append((EntityKind.FEE, 0, fee))

    output_ends = stack_centers(right_thicknesses, config.line_spacing)
    output_mids = packed_centers(right_thicknesses, center_offset)
    for n, (kind, index, entity) in enumerate(right_entities):
        mid_y, end_y = output_mids[n], output_ends[n]
        curve = CubicCurve(
            start=Point(0.0, mid_y),
            c1=Point(far, mid_y),
            c2=Point(near, end_y),
            end=Point(half, end_y),
        )
        drawables.append(_drawable(kind, index, entity, curve, right_thicknesses[n]))

    markers: list[SpendMarker] = []
    if outspends is not None:
        for i, outspend in enumerate(outspends[: len(record.vout)]):
            if not outspend.spent:
                continue
            end_y = output_ends[i]
            rect = Rect(
                half + SPEND_MARKER_GAP,
                end_y - SPEND_MARKER_HEIGHT / 2,
                SPEND_MARKER_WIDTH,
                SPEND_MARKER_HEIGHT,
            )
            markers.append(SpendMarker(i, outspend.spending_txid, rect))

    anchor = drawables[0].curve.start if record.vin else Point(-half, 0.0)

    return NodeLayout(
        drawables=tuple(drawables),
        markers=tuple(markers),
        anchor=anchor,
        input_span=stack_span(input_thicknesses, config.line_spacing),
        output_span=stack_span(right_thicknesses, config.line_spacing),
        center_height=center_height,
        line_length=config.line_length,
    )


def _drawable(
    kind: EntityKind,
    index: int,
    entity: TxInput | TxOutput | FeeEntity,
    curve: CubicCurve,
    stroke_width: float,
) -> Drawable:
    return Drawable(
        kind=kind,
        index=index,
        entity=entity,
        curve=curve,
        stroke_width=stroke_width,
        hit_region=curve.bounds().padded(stroke_width / 2),
    )
