"""
Command-line interface for txflow.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from pydantic import ValidationError

from txflow.config import Settings, get_settings
from txflow.explorer import Explorer, NodeScene
from txflow.hover import HoverEvent, describe
from txflow.layout import LayoutConfig
from txflow.ledger import EsploraLedger, LedgerClient, MemoryLedger
from txflow.models import EntityKind, TransactionRecord, parse_outspends
from txflow.svg import render_svg

app = typer.Typer(
    name="txflow",
    help="txflow - Draw Bitcoin transactions as flow diagrams",
    add_completion=False,
)


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_ledger_file(path: Path) -> tuple[MemoryLedger, str]:
    """
    Load transactions from a JSON file into an in-memory ledger.

    The file holds either a single Esplora transaction object, or an object
    with a ``transactions`` list and an optional ``outspends`` mapping of
    txid to Esplora outspends list. The first transaction is the root.

    Raises:
        ValueError: If the file holds no usable transaction
    """
    data = json.loads(path.read_text())
    if isinstance(data, dict) and "txid" in data:
        data = {"transactions": [data]}
    if not isinstance(data, dict) or not data.get("transactions"):
        raise ValueError(f"No transactions in {path}")

    try:
        records = [TransactionRecord.model_validate(tx) for tx in data["transactions"]]
        outspends = {
            txid.lower(): parse_outspends(items)
            for txid, items in (data.get("outspends") or {}).items()
        }
    except ValidationError as e:
        raise ValueError(f"Invalid transaction data in {path}: {e}") from e
    return MemoryLedger(records, outspends), records[0].txid


def scenes_to_dict(explorer: Explorer, scenes: list[NodeScene]) -> dict[str, Any]:
    return {
        "global_max_value": explorer.tree.global_max_value,
        "config": explorer.config.model_dump(),
        "transform": {
            "x": explorer.viewport.transform.x,
            "y": explorer.viewport.transform.y,
            "k": explorer.viewport.transform.k,
        },
        "registry": explorer.tree.registry,
        "nodes": [
            {
                "key": s.node.key,
                "txid": s.node.id,
                "parent": s.node.parent_key,
                "output_index": s.node.output_index,
                "position": [s.position.x, s.position.y],
                "drag_handle": [s.drag_handle.x, s.drag_handle.y],
                "layout": s.layout.to_dict(),
            }
            for s in scenes
        ],
    }


async def _render(
    ledger: LedgerClient,
    settings: Settings,
    config: LayoutConfig,
    txid: str,
    expand: list[int],
) -> tuple[Explorer, list[NodeScene]]:
    async with ledger:
        explorer = Explorer(ledger, settings=settings, config=config)
        root = await explorer.submit(txid)
        if root is not None:
            for output_index in expand:
                if not root.is_spent(output_index):
                    logger.warning(f"Output {output_index} is not spent, skipping")
                    continue
                await explorer.click_output(root, output_index)
        return explorer, explorer.render()


@app.command()
def render(
    txid: Annotated[str | None, typer.Argument(help="Transaction id to draw")] = None,
    from_file: Annotated[
        Path | None,
        typer.Option("--from-file", "-f", help="Read transactions from a JSON file instead"),
    ] = None,
    expand: Annotated[
        list[int] | None,
        typer.Option("--expand", "-e", help="Spent output index of the root to expand"),
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to file instead of stdout")
    ] = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Emit scene geometry as JSON instead of SVG")
    ] = False,
    esplora_url: Annotated[
        str | None, typer.Option("--esplora-url", envvar="ESPLORA_URL", help="Esplora API URL")
    ] = None,
    thickness_ratio: Annotated[
        float | None, typer.Option("--ratio", help="Thickness ratio (0.5-2)")
    ] = None,
    line_spacing: Annotated[
        float | None, typer.Option("--spacing", help="Line spacing in px (0-50)")
    ] = None,
    line_length: Annotated[
        float | None, typer.Option("--length", help="Line length in px (200-1500)")
    ] = None,
    min_line_thickness: Annotated[
        float | None, typer.Option("--min-thickness", help="Minimum line thickness (0.1-5)")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="Log level (default: LOG_LEVEL)")
    ] = None,
) -> None:
    """Draw a transaction (and optionally the spenders of its outputs)."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    overrides = {
        "thickness_ratio": thickness_ratio,
        "line_spacing": line_spacing,
        "line_length": line_length,
        "min_line_thickness": min_line_thickness,
    }
    try:
        config = LayoutConfig.model_validate(
            {
                **settings.layout_config().model_dump(),
                **{k: v for k, v in overrides.items() if v is not None},
            }
        )
    except ValidationError as e:
        logger.error(f"Invalid layout parameters: {e}")
        raise typer.Exit(1)

    ledger: LedgerClient
    if from_file is not None:
        try:
            ledger, file_root = load_ledger_file(from_file)
        except (OSError, ValueError) as e:
            logger.error(str(e))
            raise typer.Exit(1)
        txid = txid or file_root
    elif txid is None:
        logger.error("Transaction id required (or use --from-file)")
        raise typer.Exit(1)
    else:
        ledger = EsploraLedger(
            base_url=esplora_url or settings.esplora_url,
            timeout=settings.request_timeout,
            max_concurrent_requests=settings.max_concurrent_requests,
        )

    explorer, scenes = asyncio.run(_render(ledger, settings, config, txid, expand or []))

    for notice in explorer.notices:
        if notice.level == "error":
            logger.error(notice.message)
        else:
            logger.warning(notice.message)
    if not scenes:
        raise typer.Exit(1)

    if as_json:
        text = json.dumps(scenes_to_dict(explorer, scenes), indent=2)
    else:
        text = render_svg(scenes, explorer.viewport)

    if output is not None:
        output.write_text(text)
        logger.info(f"Wrote {len(scenes)} node(s) to {output}")
    else:
        typer.echo(text)


@app.command()
def info(
    txid: Annotated[str | None, typer.Argument(help="Transaction id")] = None,
    from_file: Annotated[
        Path | None,
        typer.Option("--from-file", "-f", help="Read transactions from a JSON file instead"),
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="Log level (default: WARNING)")
    ] = None,
) -> None:
    """Describe every input, output and the fee of a transaction."""
    setup_logging(log_level or "WARNING")
    settings = get_settings()

    ledger: LedgerClient
    if from_file is not None:
        try:
            ledger, file_root = load_ledger_file(from_file)
        except (OSError, ValueError) as e:
            logger.error(str(e))
            raise typer.Exit(1)
        txid = txid or file_root
    elif txid is None:
        logger.error("Transaction id required (or use --from-file)")
        raise typer.Exit(1)
    else:
        ledger = EsploraLedger(base_url=settings.esplora_url, timeout=settings.request_timeout)

    explorer, scenes = asyncio.run(_render(ledger, settings, settings.layout_config(), txid, []))
    if not scenes:
        for notice in explorer.notices:
            logger.error(notice.message)
        raise typer.Exit(1)

    scene = scenes[0]
    typer.echo(f"Transaction {scene.node.id}")
    for drawable in scene.layout.drawables:
        event = HoverEvent(drawable.entity, drawable.kind, scene.node.key, drawable.index)
        summary = describe(event, scene.node.record)
        details = ", ".join(
            f"{k}={v}" for k, v in summary.items() if k not in ("title", "kind", "value")
        )
        spent = ""
        if drawable.kind == EntityKind.OUTPUT and scene.node.is_spent(drawable.index):
            spent = f" -> spent by {scene.node.spending_txid(drawable.index)}"
        typer.echo(
            f"  {summary['title']} #{drawable.index}: {summary['value']} sats ({details}){spent}"
        )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
