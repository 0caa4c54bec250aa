"""Command line entry point for the Collapsi rules service.

Usage:
    collapsi serve [--host HOST] [--port PORT]
    collapsi new [--seed N] [--out game.json]
    collapsi legal game.json
    collapsi move game.json 0,0 0,1 [--out next.json]
    collapsi joker-step game.json 1,0 [--out next.json]
    collapsi joker-end game.json [--out next.json]

Snapshots are the JSON files written by ``collapsi.snapshot``. Commands
that change the game print the new snapshot, or write it to ``--out``.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, Sequence

from .config import get_config
from .core.logging_config import configure_third_party_loggers, setup_logging
from .errors import CollapsiError, InvalidMoveError
from .game_engine import GameEngine, TurnResult
from .models import Position
from .snapshot import dump_snapshot, load_snapshot_file, save_snapshot

__all__ = ["main", "parse_position"]


def parse_position(text: str) -> Position:
    """Parse ``"row,col"`` into a Position."""
    try:
        return Position.from_key(text.strip())
    except ValueError as exc:
        raise InvalidMoveError(
            f"Expected a position like '1,2', got {text!r}",
            context={"argument": text},
        ) from exc


def _emit_state(result: TurnResult, out: Optional[str]) -> int:
    if not result.success:
        reason = result.reason.value if result.reason else "rejected"
        print(f"rejected: {reason}: {result.message}", file=sys.stderr)
        return 1
    state = result.state
    if out:
        save_snapshot(state, out)
        print(f"saved {out} (version {state.version}, {state.status.value})")
    else:
        print(dump_snapshot(state))
    if state.winner:
        print(f"game over: {state.winner} wins", file=sys.stderr)
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    config = get_config()
    uvicorn.run(
        "collapsi.main:app",
        host=args.host or config.host,
        port=args.port or config.port,
    )
    return 0


def _cmd_new(args: argparse.Namespace) -> int:
    state = GameEngine.new_game(seed=args.seed)
    if args.out:
        save_snapshot(state, args.out)
        print(f"saved {args.out} (game {state.id})")
    else:
        print(dump_snapshot(state))
    return 0


def _cmd_legal(args: argparse.Namespace) -> int:
    state = load_snapshot_file(args.snapshot)
    options = GameEngine.get_legal_destinations(state)
    payload = {
        "player": state.active_player.id,
        "card": GameEngine.current_card(state).value,
        "destinations": [
            {
                "destination": option.destination.to_key(),
                "path": [p.to_key() for p in option.path],
            }
            for option in options
        ],
    }
    if state.joker_state is not None:
        payload["jokerSteps"] = [
            p.to_key() for p in GameEngine.get_joker_step_options(state)
        ]
    print(json.dumps(payload, indent=2))
    return 0


def _cmd_move(args: argparse.Namespace) -> int:
    state = load_snapshot_file(args.snapshot)
    path = [parse_position(p) for p in args.path]
    return _emit_state(GameEngine.apply_move(state, path), args.out)


def _cmd_joker_step(args: argparse.Namespace) -> int:
    state = load_snapshot_file(args.snapshot)
    position = parse_position(args.position)
    return _emit_state(GameEngine.joker_step(state, position), args.out)


def _cmd_joker_end(args: argparse.Namespace) -> int:
    state = load_snapshot_file(args.snapshot)
    return _emit_state(GameEngine.end_joker_turn(state), args.out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="collapsi", description="Collapsi rules engine"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override COLLAPSI_LOG_LEVEL for this run",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP rules service")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=_cmd_serve)

    new = sub.add_parser("new", help="Deal a new game")
    new.add_argument("--seed", type=int, default=None)
    new.add_argument("--out", default=None, help="Write the snapshot here")
    new.set_defaults(func=_cmd_new)

    legal = sub.add_parser("legal", help="List legal destinations")
    legal.add_argument("snapshot")
    legal.set_defaults(func=_cmd_legal)

    move = sub.add_parser("move", help="Submit a full path")
    move.add_argument("snapshot")
    move.add_argument("path", nargs="+", help="Positions as row,col")
    move.add_argument("--out", default=None)
    move.set_defaults(func=_cmd_move)

    step = sub.add_parser("joker-step", help="Take one joker step")
    step.add_argument("snapshot")
    step.add_argument("position", help="Position as row,col")
    step.add_argument("--out", default=None)
    step.set_defaults(func=_cmd_joker_step)

    end = sub.add_parser("joker-end", help="End the current joker turn")
    end.add_argument("snapshot")
    end.add_argument("--out", default=None)
    end.set_defaults(func=_cmd_joker_end)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    setup_logging(
        "collapsi",
        level=args.log_level or config.log_level,
        format_style=config.log_format,
    )
    configure_third_party_loggers()

    try:
        return args.func(args)
    except CollapsiError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
