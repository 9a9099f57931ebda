#!/usr/bin/env python3
"""
PRIZEREVEAL - Widget Playground CLI

Usage:
    python -m tools.reveal_cli scratch --points "40,40;80,40;120,40"
    python -m tools.reveal_cli scratch --random 200 --snapshot card.png
    python -m tools.reveal_cli scratch --validate 500 --config '{"clear_percentage": 70}'
    python -m tools.reveal_cli wheel --config '{"options": [{"prize": "A"}, {"prize": "B"}]}'
    python -m tools.reveal_cli gumball --seed 7
    python -m tools.reveal_cli scratch --dump-config
"""

import argparse
import json
import logging
import random
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import RevealConfig
from config.widget_schema import ConfigError, parse_widget_config
from reveal_engine import WIDGET_TYPES, get_widget
from reveal_engine.events import GAME_COMPLETED, EventTarget
from reveal_engine.pointer import BoundingBox, PointerEvent
from tools.scratch_validator import ScratchValidator, solid_texture_loader

console = Console()


def parse_points(text: str) -> list[tuple[float, float]]:
    """'x,y;x,y;...' → [(x, y), ...]"""
    points = []
    for chunk in text.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            x, y = (float(v) for v in chunk.split(","))
        except ValueError:
            raise argparse.ArgumentTypeError(f"Bad point {chunk!r}, expected x,y")
        points.append((x, y))
    return points


def _load_payload(args) -> str:
    if args.config_file:
        return Path(args.config_file).read_text(encoding="utf-8")
    return args.config or "{}"


def _run_scratch(card, args, rng: random.Random) -> None:
    size = args.size
    points = list(args.points or [])
    for _ in range(args.random):
        points.append((rng.uniform(0, size), rng.uniform(0, size)))
    if not points:
        console.print("[yellow]No points given (use --points or --random)[/yellow]")
        return

    table = Table(title=f"Scratch session ({size}x{size}, clear at {card.config.clear_percentage}%)")
    table.add_column("#", justify="right")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    table.add_column("coverage %", justify="right")
    table.add_column("state")

    x0, y0 = points[0]
    card.handle_event(PointerEvent.mouse("mousedown", x0, y0))
    table.add_row("1", f"{x0:.1f}", f"{y0:.1f}", f"{card.coverage:.2f}", card.state.value)
    for i, (x, y) in enumerate(points[1:], 2):
        card.handle_event(PointerEvent.mouse("mousemove", x, y))
        table.add_row(str(i), f"{x:.1f}", f"{y:.1f}", f"{card.coverage:.2f}", card.state.value)
    card.handle_event(PointerEvent.mouse("mouseup", *points[-1]))
    console.print(table)

    if args.snapshot:
        card.snapshot().save(args.snapshot)
        console.print(f"🖼️  Snapshot saved to {args.snapshot}")


def _run_validation(args, config: dict) -> int:
    validator = ScratchValidator()
    console.print(f"[cyan]Running {args.validate:,} scratch sessions...[/cyan]")
    report = validator.run(config, n_sessions=args.validate, width=args.size,
                           height=args.size, seed=args.seed)
    console.print(Panel(report.to_json(), title=f"Scratch validation {report.status}"))
    return 0 if report.passed else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Play prize widgets from the command line")
    parser.add_argument("widget", choices=WIDGET_TYPES)
    parser.add_argument("--config", type=str, help="JSON config payload")
    parser.add_argument("--config-file", type=str, help="Read the JSON config from a file")
    parser.add_argument("--dump-config", action="store_true")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--size", type=int, default=RevealConfig.DEFAULT_SURFACE_SIZE,
                        help="Scratch surface size in pixels (square)")
    parser.add_argument("--points", type=parse_points, help='Scratch path as "x,y;x,y;..."')
    parser.add_argument("--random", type=int, default=0, help="Append N random scratch points")
    parser.add_argument("--snapshot", type=str, help="Save the scratched card as an image")
    parser.add_argument("--validate", type=int, default=0, help="Validate N random scratch sessions")
    parser.add_argument("--offline", action="store_true", help="Don't fetch cover textures")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, RevealConfig.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    for _noisy in ("httpx", "httpcore", "PIL"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)

    rng = random.Random(args.seed)
    payload = _load_payload(args)
    widget_kwargs = {"parent": EventTarget()}
    if args.widget == "scratch":
        if args.offline:
            widget_kwargs["texture_loader"] = solid_texture_loader
    else:
        widget_kwargs["rng"] = rng
    widget = get_widget(args.widget, **widget_kwargs)

    try:
        config = parse_widget_config(widget.config_model, payload, base=widget.config)
    except ConfigError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 2

    if args.dump_config:
        print(config.model_dump_json(indent=2, by_alias=True))
        return 0

    if args.widget == "scratch" and args.validate:
        return _run_validation(args, json.loads(payload))

    widget.parent.add_event_listener(
        GAME_COMPLETED,
        lambda e: console.print(Panel(json.dumps(e.to_dict()), title=f"🎉 {GAME_COMPLETED}", style="green")),
    )

    if args.widget == "scratch":
        widget.init(config)
        widget.connect(BoundingBox(0, 0, args.size, args.size))
        if widget.cover_fallback:
            console.print("[yellow]⚠️  Cover texture unavailable, using blank cover[/yellow]")
        _run_scratch(widget, args, rng)
    elif args.widget == "wheel":
        widget.connect()
        widget.init(config)
        rotation = widget.spin()
        if rotation is None:
            console.print("[yellow]Wheel has no options[/yellow]")
            return 1
        console.print(f"🎡 Spinning {rotation:.0f}°")
        result = widget.finish_spin()
        console.print(f"   Landed on #{result['index']}: {widget.prize_display}")
    else:
        widget.connect()
        widget.init(config)
        ball = widget.turn_crank()
        if ball is None:
            console.print("[yellow]Gumball machine is empty[/yellow]")
            return 1
        console.print(f"🍬 Dispensed a {ball.color} gumball")
        widget.pop()
        console.print(f"   Prize: {widget.prize_display}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
