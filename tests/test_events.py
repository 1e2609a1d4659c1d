"""
Tests for the event catalog and weighted selector.
"""

from dataclasses import replace

from events import EVENTS, EventChoice, GameEvent, eligible_events, get_event, pick_event
from state import create_initial_state


def on(day: int, week: int):
    return replace(create_initial_state(), day=day, week=week)


def constant(value: float):
    return lambda: value


class TestEligibility:
    """Test day/week gates."""

    def test_first_day_only_ungated_events(self):
        ids = [e.event_id for e in eligible_events(on(1, 1))]

        assert ids == ['coffee-break']

    def test_week_one_excludes_week_gated_events(self):
        ids = [e.event_id for e in eligible_events(on(3, 1))]

        assert ids == ['overtime-offer', 'coffee-break', 'unexpected-bill']

    def test_bug_bash_needs_day_and_week(self):
        assert 'bug-bash' not in [e.event_id for e in eligible_events(on(2, 2))]
        assert 'bug-bash' in [e.event_id for e in eligible_events(on(3, 2))]


class TestPickEvent:
    """Test weighted selection."""

    def test_zero_roll_picks_first_eligible(self):
        assert pick_event(on(3, 2), constant(0)).event_id == 'overtime-offer'

    def test_top_roll_picks_last_eligible(self):
        assert pick_event(on(3, 2), constant(0.9999999)).event_id == 'unexpected-bill'

    def test_roll_on_boundary_selects_next_event(self):
        """Weights 3,2,2,2,1: a roll of exactly 5 lands past mentor-session."""
        assert pick_event(on(3, 2), constant(0.5)).event_id == 'coffee-break'

    def test_gates_respected(self):
        assert pick_event(on(1, 1), constant(0.9)).event_id == 'coffee-break'

    def test_no_eligible_events_draws_nothing(self):
        calls = []

        def rng():
            calls.append(1)
            return 0.0

        gated = GameEvent('late', 'Late', 'text', 1, (), min_week=5)

        assert pick_event(on(1, 1), rng, (gated,)) is None
        assert pick_event(on(1, 1), rng, ()) is None
        assert calls == []

    def test_zero_total_weight(self):
        catalog = (GameEvent('flat', 'Flat', 'text', 0, ()),)

        assert pick_event(on(1, 1), constant(0.5), catalog) is None

    def test_draws_exactly_once(self):
        calls = []

        def rng():
            calls.append(1)
            return 0.4

        pick_event(on(3, 2), rng)

        assert len(calls) == 1


class TestCatalog:
    """Test catalog contents and choice effects."""

    def test_every_event_has_choices(self):
        for event in EVENTS:
            assert len(event.choices) >= 2
            assert event.weight > 0

    def test_lookup(self):
        assert get_event('bug-bash').title == 'Bug Bash'
        assert get_event('missing') is None
        assert get_event('bug-bash').get_choice('nope') is None

    def test_choices_keep_stats_non_negative(self):
        broke = replace(create_initial_state(), energy=0, morale=0, skill=0, money=0)

        for event in EVENTS:
            for choice in event.choices:
                result = choice.apply(broke)
                assert 0 <= result.energy <= result.max_energy
                assert min(result.morale, result.skill, result.money) >= 0

    def test_choice_callable(self):
        choice = EventChoice('x', 'X', lambda s: replace(s, money=s.money + 1))

        assert choice.apply(create_initial_state()).money == 11
