"""
Random events for Agent Rogue.

Events are immutable catalog entries gated by day/week. The selector walks
eligible events in catalog order and picks by cumulative weight.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from state import GameState, apply_delta


@dataclass(frozen=True)
class EventChoice:
    """A player choice that resolves an event."""
    choice_id: str
    label: str
    apply: Callable[[GameState], GameState]


@dataclass(frozen=True)
class GameEvent:
    """A weighted random event with two or more choices."""
    event_id: str
    title: str
    text: str
    weight: float
    choices: Tuple[EventChoice, ...]
    min_day: Optional[int] = None
    min_week: Optional[int] = None

    def get_choice(self, choice_id: str) -> Optional[EventChoice]:
        for choice in self.choices:
            if choice.choice_id == choice_id:
                return choice
        return None

    def is_eligible(self, state: GameState) -> bool:
        if self.min_day is not None and state.day < self.min_day:
            return False
        if self.min_week is not None and state.week < self.min_week:
            return False
        return True


# =============================================================================
# EVENT CATALOG
# =============================================================================

EVENTS: Tuple[GameEvent, ...] = (
    GameEvent(
        event_id='overtime-offer',
        title='Overtime Offer',
        text='A lucrative contract needs a quick turnaround. Do you stay late?',
        weight=3,
        min_day=2,
        choices=(
            EventChoice(
                'take-it',
                'Take the overtime (+$8, -1 morale, -1 energy)',
                lambda s: apply_delta(s, money=8, morale=-1, energy=-1),
            ),
            EventChoice(
                'decline',
                'Decline and rest (+1 morale)',
                lambda s: apply_delta(s, morale=1),
            ),
        ),
    ),
    GameEvent(
        event_id='mentor-session',
        title='Mentor Session',
        text='A senior agent offers to review your work if you can spare the time.',
        weight=2,
        min_week=2,
        choices=(
            EventChoice(
                'attend',
                'Attend (+2 skill, -1 energy, +1 morale)',
                lambda s: apply_delta(s, skill=2, energy=-1, morale=1),
            ),
            EventChoice(
                'reschedule',
                'Reschedule (-1 morale)',
                lambda s: apply_delta(s, morale=-1),
            ),
        ),
    ),
    GameEvent(
        event_id='coffee-break',
        title='Coffee Break',
        text='The team heads out for fancy lattes. Do you join them?',
        weight=2,
        choices=(
            EventChoice(
                'treat-team',
                'Treat the team (+2 morale, -$2)',
                lambda s: apply_delta(s, morale=2, money=-2),
            ),
            EventChoice(
                'skip',
                'Skip and sip water (+1 energy)',
                lambda s: apply_delta(s, energy=1),
            ),
        ),
    ),
    GameEvent(
        event_id='bug-bash',
        title='Bug Bash',
        text='A critical bug bash needs volunteers to crush lingering issues.',
        weight=2,
        min_week=2,
        min_day=3,
        choices=(
            EventChoice(
                'dive-in',
                'Dive in (+2 skill, -2 energy)',
                lambda s: apply_delta(s, skill=2, energy=-2),
            ),
            EventChoice(
                'coordinate',
                'Coordinate (+1 skill, -1 energy, +1 morale)',
                lambda s: apply_delta(s, skill=1, energy=-1, morale=1),
            ),
        ),
    ),
    GameEvent(
        event_id='unexpected-bill',
        title='Unexpected Bill',
        text='A forgotten invoice arrives and needs to be handled immediately.',
        weight=1,
        min_day=2,
        choices=(
            EventChoice(
                'pay-now',
                'Pay it now (-$4, -1 morale)',
                lambda s: apply_delta(s, money=-4, morale=-1),
            ),
            EventChoice(
                'negotiate',
                'Negotiate (-$2)',
                lambda s: apply_delta(s, money=-2),
            ),
        ),
    ),
)


def get_event(event_id: str, catalog: Sequence[GameEvent] = EVENTS) -> Optional[GameEvent]:
    """Get event by ID."""
    for event in catalog:
        if event.event_id == event_id:
            return event
    return None


def eligible_events(state: GameState, catalog: Sequence[GameEvent] = EVENTS) -> List[GameEvent]:
    """Events whose day/week gates are satisfied, in catalog order."""
    return [event for event in catalog if event.is_eligible(state)]


def pick_event(
    state: GameState,
    rng: Callable[[], float],
    catalog: Sequence[GameEvent] = EVENTS,
) -> Optional[GameEvent]:
    """
    Weighted pick among eligible events.

    Draws exactly one value from `rng` when there is something to pick.
    A roll landing exactly on a cumulative boundary selects the next event.
    """
    eligible = eligible_events(state, catalog)
    if not eligible:
        return None

    total_weight = sum(max(0, event.weight) for event in eligible)
    if total_weight <= 0:
        return None

    roll = rng() * total_weight
    cumulative = 0.0

    for event in eligible:
        cumulative += max(0, event.weight)
        if roll < cumulative:
            return event

    return eligible[-1]
