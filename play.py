"""
Terminal front-end for Agent Rogue.

Reads one command per line and dispatches it to GameEngine:
    t / w / r      train, work, rest
    n              end the day
    s              show the upgrade shop
    b <id>         buy an upgrade
    g              show goals
    h              show recent commands
    new            start a new run
    q              quit
"""

from pathlib import Path
from typing import Callable, List, Optional
import argparse
import logging

from engine import Action, GameEngine, new_game
from narrative import NarrativeEngine
from save import JsonFileStore, SAVE_DIR

ACTION_KEYS = {
    't': Action.TRAIN,
    'w': Action.WORK,
    'r': Action.REST,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play Agent Rogue in the terminal.")
    parser.add_argument('--seed', type=int, default=None, help="RNG seed for a new run")
    parser.add_argument('--save-dir', type=Path, default=SAVE_DIR, help="Directory for save files")
    parser.add_argument('--no-save', action='store_true', help="Do not read or write save files")
    parser.add_argument('--log-level', default='INFO', help="Logging level (DEBUG, INFO, WARNING)")
    return parser.parse_args(argv)


def _prompt_event(engine: GameEngine, narrative: NarrativeEngine, read: Callable[[str], str]) -> bool:
    """Ask until the pending event is resolved. False when input ends."""
    event = engine.pending_event
    print(narrative.render_event(event))
    while engine.pending_event is event:
        try:
            answer = read("Choose> ").strip()
        except EOFError:
            return False
        if answer.isdigit() and 1 <= int(answer) <= len(event.choices):
            answer = event.choices[int(answer) - 1].choice_id
        result = engine.choose(answer)
        if result['error']:
            print(f"! {result['error']}")
        else:
            print(narrative.render_turn(result), end='')
    return True


def run(engine: GameEngine, read: Callable[[str], str] = input) -> GameEngine:
    """Command loop. Returns when the player quits or input ends."""
    narrative = NarrativeEngine()

    while True:
        print(narrative.render_status(engine.state), end='')
        banner = narrative.render_outcome(engine.state)
        if banner:
            print(banner, end='')

        if engine.pending_event:
            if not _prompt_event(engine, narrative, read):
                return engine
            continue

        try:
            line = read("> ").strip()
        except EOFError:
            return engine

        command, _, arg = line.partition(' ')
        command = command.lower()

        if command == 'q':
            return engine
        if command in ACTION_KEYS:
            result = engine.take_action(ACTION_KEYS[command])
        elif command == 'n':
            result = engine.next_day()
        elif command == 'b' and arg:
            result = engine.buy_upgrade(arg.strip())
        elif command == 's':
            print(narrative.render_shop(engine.state, engine.upgrades), end='')
            continue
        elif command == 'g':
            print(narrative.render_goals(engine.state), end='')
            continue
        elif command == 'h':
            print(narrative.render_history(engine.history), end='')
            continue
        elif command == 'new':
            engine.new_run()
            continue
        else:
            print(__doc__)
            continue

        if not result['error']:
            print(narrative.render_turn(result), end='')


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    store = None if args.no_save else JsonFileStore(args.save_dir)
    engine = None
    if store is not None and args.seed is None:
        engine = GameEngine.load(store)
    if engine is None:
        engine = new_game(seed=args.seed, store=store)

    run(engine)


if __name__ == '__main__':
    main()
