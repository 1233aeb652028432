"""Command-line runner for FRACTRAN programs.

Modes:
- run: single-step until halt (or --max-steps) and print the final state.
- forecast: dry-run only, report the halting step or that it is unknown.
- play: animated playback against the wall clock, one phase per timer.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .animation import AnimationPhase
from .config import (
    DEFAULT_SPEED,
    FORECAST_LIMIT,
    MAX_HISTORY_DEFAULT,
    EngineConfig,
)
from .engine import FractranEngine, LoadOptions
from .errors import FractranError
from .events import SimulationEvent, parse_event_kinds
from .presets import PRESETS, get_preset
from .primes import format_prime_factors
from .program import format_program, parse_register_text


# ---------- CLI ----------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fractran", description="Run FRACTRAN programs")
    p.add_argument(
        "--mode",
        choices=["run", "forecast", "play"],
        default="run",
        help="run: step to halt; forecast: dry-run only; play: animated playback",
    )
    src = p.add_mutually_exclusive_group()
    src.add_argument("--program", help='Comma separated fractions, e.g. "3/2,5/3"')
    src.add_argument(
        "--preset",
        choices=[pr.name for pr in PRESETS],
        help="Load a built-in example program",
    )
    start = p.add_mutually_exclusive_group()
    start.add_argument("--input", type=int, help="Initial integer")
    start.add_argument("--registers", help='Initial registers as PRIME:EXP pairs, e.g. "2:3,3:2"')
    p.add_argument("--editable", default="", help="Comma separated primes editable at step 0")
    p.add_argument("--events", default=None, help="Comma separated event kinds to detect")
    p.add_argument("--max-steps", type=int, default=10000, help="Stop after this many steps")
    p.add_argument("--speed", type=float, default=DEFAULT_SPEED, help="Playback speed 1-100")
    p.add_argument("--history", type=int, default=MAX_HISTORY_DEFAULT, help="States kept for scrubbing")
    p.add_argument("--forecast-limit", type=int, default=FORECAST_LIMIT, help="Forecast step bound")
    p.add_argument("--visual", action="store_true", help="Open the pygame board")
    p.add_argument("--cell-size", type=int, default=24, help="Pixel size per bead when --visual")
    p.add_argument("--render-fps", type=float, default=60.0, help="Render frames per second when --visual")
    p.add_argument("--verbose", action="store_true", help="Print every step (run) or phase (play)")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for engine diagnostics",
    )
    return p


def _split(text: str) -> List[str]:
    return [s.strip() for s in text.split(",") if s.strip()]


def build_engine(args: argparse.Namespace, on_phase=None) -> FractranEngine:
    preset = get_preset(args.preset) if args.preset else None
    if args.program is not None:
        fractions = _split(args.program)
    elif preset is not None:
        fractions = list(preset.fractions)
    else:
        raise SystemExit("either --program or --preset is required")

    if args.input is not None:
        registers = args.input
    elif args.registers is not None:
        registers = parse_register_text(args.registers)
    elif preset is not None:
        registers = dict(preset.initial_registers)
    else:
        registers = None

    editable = [int(x) for x in _split(args.editable)]
    if not editable and preset is not None:
        editable = list(preset.editable_primes)
    if args.events is not None:
        kinds = parse_event_kinds(_split(args.events))
    elif preset is not None:
        kinds = list(preset.events)
    else:
        kinds = parse_event_kinds(["halted"])

    config = EngineConfig(
        history_capacity=args.history,
        forecast_limit=args.forecast_limit,
        initial_speed=args.speed,
    )
    return FractranEngine(
        fractions,
        registers,
        LoadOptions(editable_primes=editable, enabled_event_kinds=kinds),
        config=config,
        on_event=_print_event,
        on_phase=on_phase,
    )


def _print_event(event: SimulationEvent) -> None:
    kind = getattr(event.kind, "value", event.kind)
    print(f"  [{event.step:6d}] {kind}: {event.message}")


def _print_summary(engine: FractranEngine) -> None:
    state = engine.state
    print("FRACTRAN run complete" if state.halted else "FRACTRAN run stopped")
    print(f"- steps: {state.step}")
    print(f"- halted: {state.halted}")
    print(f"- n: {format_prime_factors(state.registers)}")
    print(f"- value: {state.value}")


def run_forecast(engine: FractranEngine) -> int:
    print(f"program: {format_program(engine.program)}")
    print(f"start:   {format_prime_factors(engine.history.root.registers)}")
    if engine.total_steps is None:
        print(f"forecast: unknown (no halt within {engine.config.forecast_limit} steps)")
        return 1
    print(f"forecast: halts at step {engine.total_steps}")
    return 0


def run_steps(engine: FractranEngine, max_steps: int, verbose: bool) -> int:
    for _ in range(max_steps):
        if engine.state.halted:
            break
        state = engine.step()
        if verbose and not state.halted:
            print(f"step={state.step:6d} rule={state.last_rule_index:3d} n={format_prime_factors(state.registers)}")
    _print_summary(engine)
    return 0 if engine.state.halted else 1


def run_playback(engine: FractranEngine, max_steps: int) -> int:
    engine.set_playing(True)
    engine.scheduler.run_until(lambda: not engine.playing or engine.state.step >= max_steps)
    engine.stop()
    _print_summary(engine)
    return 0 if engine.state.halted else 1


def run_visual(engine: FractranEngine, args: argparse.Namespace) -> int:
    from .viewer import BoardViewer

    viewer = BoardViewer(engine, cell_size=args.cell_size, render_fps=args.render_fps)
    try:
        if args.mode == "play":
            engine.set_playing(True)
        viewer.run()
    finally:
        viewer.close()
    _print_summary(engine)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    def on_phase(phase: AnimationPhase) -> None:
        if args.verbose:
            print(f"  phase={phase.value}")

    try:
        engine = build_engine(args, on_phase=on_phase)
    except (FractranError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2)

    try:
        if args.mode == "forecast":
            raise SystemExit(run_forecast(engine))
        if args.visual:
            raise SystemExit(run_visual(engine, args))
        if args.mode == "play":
            raise SystemExit(run_playback(engine, args.max_steps))
        raise SystemExit(run_steps(engine, args.max_steps, args.verbose))
    except KeyboardInterrupt:
        print("Interrupted by user.")
        engine.stop()


if __name__ == "__main__":
    main()
