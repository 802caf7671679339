"""
Static SVG rendering of an explorer scene.

Mirrors the browser view: a tiled grid background in world space, one group
per node translated to its world position, coloured curves with the fee in
red, and a marker on each spent output.
"""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

from txflow.constants import COLOR_FEE, COLOR_INPUT, COLOR_OUTPUT, COLOR_SPEND_MARKER
from txflow.explorer import NodeScene
from txflow.models import EntityKind
from txflow.viewport import Viewport

STROKE_COLORS = {
    EntityKind.INPUT: COLOR_INPUT,
    EntityKind.OUTPUT: COLOR_OUTPUT,
    EntityKind.FEE: COLOR_FEE,
}

GRID_CELL = 50
GRID_FILL = "#444"
GRID_LINE = "#333"
GRID_EXTENT = 100_000


def _grid_background() -> list[str]:
    return [
        "<defs>",
        f'<pattern id="gridPattern" x="0" y="0" width="{GRID_CELL}" height="{GRID_CELL}" '
        'patternUnits="userSpaceOnUse">',
        f'<rect x="0" y="0" width="{GRID_CELL}" height="{GRID_CELL}" fill="{GRID_FILL}"/>',
        f'<path d="M {GRID_CELL} 0 L 0 0 0 {GRID_CELL}" fill="none" stroke="{GRID_LINE}" '
        'stroke-width="1"/>',
        "</pattern>",
        "</defs>",
        f'<rect x="{-GRID_EXTENT}" y="{-GRID_EXTENT}" width="{2 * GRID_EXTENT}" '
        f'height="{2 * GRID_EXTENT}" fill="url(#gridPattern)"/>',
    ]


def _node_group(scene: NodeScene, expanded: set[int]) -> list[str]:
    node = scene.node
    lines = [
        f'<g class="tx-node" id={quoteattr("node-" + node.key)} '
        f'transform="translate({scene.position.x:g},{scene.position.y:g})">',
        f"<title>{escape(node.id)}</title>",
    ]
    for drawable in scene.layout.drawables:
        lines.append(
            f'<path class="{drawable.color_class}" d="{drawable.curve.path_data()}" '
            f'stroke="{STROKE_COLORS[drawable.kind]}" '
            f'stroke-width="{drawable.stroke_width:g}" fill="none">'
            f"<title>{drawable.kind.value} {drawable.index}: {drawable.value} sats</title>"
            "</path>"
        )
    for marker in scene.layout.markers:
        rect = marker.rect
        state = "expanded" if marker.output_index in expanded else "collapsed"
        lines.append(
            f'<rect class="spend-marker {state}" x="{rect.x:g}" y="{rect.y:g}" '
            f'width="{rect.width:g}" height="{rect.height:g}" fill="{COLOR_SPEND_MARKER}"/>'
        )
    anchor = scene.layout.anchor
    lines.append(
        f'<circle class="drag-handle" cx="{anchor.x:g}" cy="{anchor.y:g}" r="5" fill="#fff"/>'
    )
    lines.append("</g>")
    return lines


def render_svg(scenes: list[NodeScene], viewport: Viewport) -> str:
    """
    Render scenes as a standalone SVG document sized to the viewport.
    """
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{viewport.width:g}" '
        f'height="{viewport.height:g}" viewBox="0 0 {viewport.width:g} {viewport.height:g}">',
        f'<g class="zoom-container" transform="{viewport.transform.svg()}">',
    ]
    lines.extend(_grid_background())
    for scene in scenes:
        lines.extend(_node_group(scene, set(scene.node.children)))
    lines.append("</g>")
    lines.append("</svg>")
    return "\n".join(lines)
