"""
Tests for the terminal front-end.
"""

from engine import new_game
from events import get_event
from play import parse_args, run


class ScriptedInput:
    """Feeds lines to run(); raises EOFError when exhausted."""

    def __init__(self, lines):
        self.lines = list(lines)

    def __call__(self, prompt=''):
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)


class QuietRng:
    """Never triggers an event."""

    def __call__(self):
        return 0.99

    def export_state(self):
        return {'seed': 0}


class TestRun:
    """Test the command loop."""

    def test_actions_and_day(self, capsys):
        engine = new_game(seed=1)
        engine.rng = QuietRng()

        run(engine, read=ScriptedInput(['t', 'n', 'q']))

        assert engine.state.day == 2
        assert engine.state.skill == 2
        assert engine.state.counters.trains_this_week == 1
        assert 'Week 1, Day 2' in capsys.readouterr().out

    def test_buy_keeps_upgrade_id_case(self):
        engine = new_game(seed=1)

        run(engine, read=ScriptedInput(['B skillBook']))

        assert engine.state.meta.upgrades == {'skillBook': 1}
        assert engine.state.money == 0

    def test_event_choice_by_number(self):
        engine = new_game(seed=1)
        engine.pending_event = get_event('coffee-break')

        run(engine, read=ScriptedInput(['9', '1', 'q']))

        assert engine.pending_event is None
        assert engine.state.morale == 7
        assert engine.state.money == 8

    def test_eof_during_event_returns(self):
        engine = new_game(seed=1)
        engine.pending_event = get_event('coffee-break')

        assert run(engine, read=ScriptedInput([])) is engine
        assert engine.pending_event is not None

    def test_unknown_command_prints_help(self, capsys):
        run(new_game(seed=1), read=ScriptedInput(['xyzzy']))

        assert 'end the day' in capsys.readouterr().out

    def test_shop_and_goals(self, capsys):
        run(new_game(seed=1), read=ScriptedInput(['s', 'g']))

        out = capsys.readouterr().out
        assert 'Upgrade shop' in out
        assert 'Goals (0/3 to win)' in out

    def test_history_command(self, capsys):
        run(new_game(seed=1), read=ScriptedInput(['w', 'h']))

        out = capsys.readouterr().out
        assert 'Recent commands' in out
        assert 'action:WORK' in out


class TestParseArgs:
    """Test CLI flags."""

    def test_defaults(self):
        args = parse_args([])

        assert args.seed is None
        assert not args.no_save
        assert args.log_level == 'INFO'

    def test_flags(self, tmp_path):
        args = parse_args(['--seed', '9', '--save-dir', str(tmp_path), '--no-save'])

        assert args.seed == 9
        assert args.save_dir == tmp_path
        assert args.no_save
