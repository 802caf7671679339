"""
Tests for SVG scene rendering.
"""

import pytest
from conftest import TXID_A, TXID_B, make_tx, spent

from txflow.explorer import Explorer
from txflow.ledger import MemoryLedger
from txflow.svg import render_svg


@pytest.mark.asyncio
async def test_render_svg_document() -> None:
    ledger = MemoryLedger(
        [make_tx(TXID_A, [5000], [3000, 1000], fee=1000), make_tx(TXID_B, [1000], [900])],
        {TXID_A: spent(None, TXID_B)},
    )
    explorer = Explorer(ledger)
    root = await explorer.submit(TXID_A)
    await explorer.click_output(root, 1)

    svg = render_svg(explorer.render(), explorer.viewport)

    assert svg.startswith("<svg ")
    assert svg.endswith("</svg>")
    assert 'id="gridPattern"' in svg
    assert f'transform="{explorer.viewport.transform.svg()}"' in svg
    assert svg.count('class="tx-node"') == 2
    assert svg.count('class="input"') == 2
    assert svg.count('class="fee"') == 1
    assert 'stroke="#f55"' in svg
    assert 'class="spend-marker expanded"' in svg
    assert "M -200,0 C -100,0 -50,0 0,0" in svg


def test_render_empty_scene() -> None:
    explorer = Explorer(MemoryLedger())
    svg = render_svg(explorer.render(), explorer.viewport)
    assert "tx-node" not in svg
    assert "gridPattern" in svg
