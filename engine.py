"""
Agent Rogue - Game Engine

Core state transitions and the turn loop. Every rule is a pure function
from (state, input) to a new state; GameEngine wraps them into a session
that owns the RNG, the pending event and autosaving.

This module is the single source of truth for:
- Action resolution (TRAIN / WORK / REST)
- Day advance, passive effects and streak counters
- Event roll policy and event resolution
- The command surface consumed by the UI layer
"""

from collections import deque
from dataclasses import replace
from enum import Enum
from typing import Optional, Deque, Dict, Any, List, Sequence, Union
import logging
import random

from events import EVENTS, GameEvent, get_event, pick_event
from goals import (
    GOAL_TARGET,
    LOSS_CONDITIONS,
    MONEY_ZERO_DAYS,
    MORALE_ZERO_DAYS,
    Outcome,
    evaluate_goals,
    get_outcome,
    is_terminal,
)
from rng import LcgRng, create_rng
from save import (
    STORAGE_KEY,
    KeyValueStore,
    load_session,
    save_state,
)
from state import GameState, clamp, clamp_stats, create_initial_state
from upgrades import UPGRADES, Upgrade, apply_upgrade

logger = logging.getLogger(__name__)


# =============================================================================
# RULE CONSTANTS
# =============================================================================

DAYS_PER_WEEK = 7

# Chance that a day advance (other than the first day of a week) rolls an event
EVENT_CHANCE = 0.35

# Most recent command records kept by GameEngine.history
HISTORY_LIMIT = 50


class Action(str, Enum):
    """Player actions that spend energy."""
    TRAIN = 'TRAIN'
    WORK = 'WORK'
    REST = 'REST'


# Base energy cost and stat deltas per action
ACTIONS: Dict[Action, Dict[str, float]] = {
    Action.TRAIN: {'cost': 3, 'skill': 2},
    Action.WORK: {'cost': 2, 'money': 5},
    Action.REST: {'cost': 0, 'morale': 1, 'energy_gain': 2},
}

ERROR_NOT_ENOUGH_ENERGY = 'Not enough energy for that action.'
ERROR_UNKNOWN_ACTION = 'Unknown action.'
ERROR_UNKNOWN_CHOICE = 'Unknown choice for this event.'
ERROR_EVENT_PENDING = 'Resolve the current event first.'
ERROR_NO_EVENT = 'There is no event to resolve.'

ActionLike = Union[Action, str]


class InvalidActionError(ValueError):
    """Raised by helpers (not commands) when given an unknown action."""
    pass


__all__ = [
    'Action', 'ACTIONS', 'DAYS_PER_WEEK', 'EVENT_CHANCE', 'HISTORY_LIMIT',
    'GOAL_TARGET', 'LOSS_CONDITIONS', 'MORALE_ZERO_DAYS', 'MONEY_ZERO_DAYS',
    'GameState', 'Outcome', 'GameEngine',
    'create_initial_state', 'apply_action', 'advance_day', 'apply_upgrade',
    'resolve_event_choice', 'get_outcome', 'reconcile_state',
    'effective_cost', 'can_afford', 'new_game', 'InvalidActionError',
]


# =============================================================================
# PURE TRANSITIONS
# =============================================================================

def _coerce_action(action: ActionLike) -> Optional[Action]:
    if isinstance(action, Action):
        return action
    if isinstance(action, str):
        try:
            return Action(action.strip().upper())
        except ValueError:
            return None
    return None


def _action_label(action: ActionLike) -> str:
    return action.value if isinstance(action, Action) else str(action)


def effective_cost(state: GameState, action: ActionLike) -> float:
    """Energy cost after upgrades. Never below 0."""
    resolved = _coerce_action(action)
    if resolved is None:
        raise InvalidActionError(f"Unknown action: {action}")
    return max(0, ACTIONS[resolved]['cost'] + state.effects.energy_cost_delta)


def can_afford(state: GameState, action: ActionLike) -> bool:
    if _coerce_action(action) is None:
        return False
    return state.energy >= effective_cost(state, action)


def reconcile_state(previous: GameState, candidate: GameState) -> GameState:
    """Clamp a candidate transition and run the goal evaluator over it."""
    result, _ = evaluate_goals(previous, clamp_stats(candidate))
    return result


def apply_action(state: GameState, action: ActionLike) -> GameState:
    """
    Resolve one action against the state.

    Unaffordable actions leave every stat untouched and set an advisory
    error. Terminal runs are returned unchanged.
    """
    if is_terminal(state):
        return state

    resolved = _coerce_action(action)
    if resolved is None:
        return state.with_error(ERROR_UNKNOWN_ACTION)

    config = ACTIONS[resolved]
    cost = effective_cost(state, resolved)

    if state.energy < cost:
        return state.with_error(ERROR_NOT_ENOUGH_ENERGY)

    morale_bonus = state.effects.rest_morale_bonus if resolved is Action.REST else 0

    candidate = replace(
        state,
        energy=clamp(state.energy - cost + config.get('energy_gain', 0), 0, state.max_energy),
        morale=max(0, state.morale + config.get('morale', 0) + morale_bonus),
        skill=max(0, state.skill + config.get('skill', 0)),
        money=max(0, state.money + config.get('money', 0)),
        error=None,
    )

    if resolved is Action.TRAIN:
        candidate = candidate.with_counters(trains_this_week=state.counters.trains_this_week + 1)

    result, _ = evaluate_goals(state, candidate)
    return result


def advance_day(state: GameState) -> GameState:
    """
    Advance the calendar by one day.

    1. Wrap day 7 into a new week (weekly training counter resets)
    2. Apply daily income / morale passives
    3. Update streak counters
    4. Refill energy
    """
    if is_terminal(state):
        return state

    day = state.day + 1
    week = state.week
    trains_this_week = state.counters.trains_this_week
    if day > DAYS_PER_WEEK:
        day = 1
        week += 1
        trains_this_week = 0

    money = max(0, state.money + state.effects.daily_income)
    morale = max(0, state.morale + state.effects.daily_morale)

    counters = state.counters
    candidate = replace(
        state,
        day=day,
        week=week,
        energy=max(0, state.max_energy),
        money=money,
        morale=morale,
        error=None,
    ).with_counters(
        trains_this_week=trains_this_week,
        days_full_energy=counters.days_full_energy + 1 if state.energy >= state.max_energy else 0,
        zero_money_streak=counters.zero_money_streak + 1 if money <= 0 else 0,
        low_morale_streak=counters.low_morale_streak + 1 if morale <= 0 else 0,
    )

    result, _ = evaluate_goals(state, candidate)
    return result


def resolve_event_choice(state: GameState, event: GameEvent, choice_id: str) -> GameState:
    """Apply the chosen event outcome, then clamp and evaluate goals."""
    if is_terminal(state):
        return state

    choice = event.get_choice(choice_id)
    if choice is None:
        return state.with_error(ERROR_UNKNOWN_CHOICE)

    return reconcile_state(state, replace(choice.apply(state), error=None))


# =============================================================================
# GAME ENGINE CLASS
# Owns the RNG and pending event; serializes commands for the UI layer.
# =============================================================================

class GameEngine:
    """
    A single run of Agent Rogue.

    Commands return a result dict and never raise. While an event is
    pending, actions, day advances and purchases are rejected with an
    advisory error until the player picks a choice.
    """

    def __init__(
        self,
        state: Optional[GameState] = None,
        seed: Optional[int] = None,
        events: Sequence[GameEvent] = EVENTS,
        upgrades: Sequence[Upgrade] = UPGRADES,
        store: Optional[KeyValueStore] = None,
        storage_key: str = STORAGE_KEY,
        autosave: bool = True,
    ):
        self.state = state or create_initial_state()
        self.seed = seed if seed is not None else random.randint(0, 2**32 - 1)
        self.rng: LcgRng = create_rng(self.seed)
        self.events = tuple(events)
        self.upgrades = tuple(upgrades)
        self.store = store
        self.storage_key = storage_key
        self.autosave = autosave
        self.pending_event: Optional[GameEvent] = None
        self.history: Deque[Dict[str, Any]] = deque(maxlen=HISTORY_LIMIT)

    # -------------------------------------------------------------------------
    # COMMANDS
    # -------------------------------------------------------------------------

    def take_action(self, action: ActionLike) -> Dict[str, Any]:
        """Spend energy on TRAIN, WORK or REST."""
        command = f'action:{_action_label(action)}'
        if self.pending_event:
            return self._reject(command)
        return self._run(command, apply_action(self.state, action))

    def next_day(self) -> Dict[str, Any]:
        """
        Advance one day and maybe roll a random event.

        No roll happens on the first day of a week or once the run is over.
        """
        if self.pending_event:
            return self._reject('next_day')

        start = self.state
        advanced = advance_day(start)
        event = None

        if advanced is not start and not is_terminal(advanced) and advanced.day != 1:
            if self.rng() < EVENT_CHANCE:
                event = pick_event(advanced, self.rng, self.events)
                if event:
                    self.pending_event = event
                    logger.info(f"Event triggered: {event.event_id} (week {advanced.week}, day {advanced.day})")

        return self._run('next_day', advanced, start=start, event=event)

    def buy_upgrade(self, upgrade_id: str) -> Dict[str, Any]:
        if self.pending_event:
            return self._reject(f'upgrade:{upgrade_id}')
        return self._run(f'upgrade:{upgrade_id}', apply_upgrade(self.state, upgrade_id, self.upgrades))

    def choose(self, choice_id: str) -> Dict[str, Any]:
        """Resolve the pending event with one of its choices."""
        event = self.pending_event
        if event is None:
            return self._run(f'choice:{choice_id}', self.state.with_error(ERROR_NO_EVENT))

        resolved = resolve_event_choice(self.state, event, choice_id)
        if resolved.error != ERROR_UNKNOWN_CHOICE:
            self.pending_event = None
        return self._run(f'choice:{event.event_id}:{choice_id}', resolved)

    def new_run(self, seed: Optional[int] = None) -> GameState:
        """Discard the current run and start fresh."""
        self.seed = seed if seed is not None else random.randint(0, 2**32 - 1)
        self.rng = create_rng(self.seed)
        self.state = create_initial_state()
        self.pending_event = None
        self.history.clear()
        self._autosave()
        return self.state

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    def _reject(self, command: str) -> Dict[str, Any]:
        logger.debug(f"Rejected {command}: event {self.pending_event.event_id} pending")
        return self._run(command, self.state.with_error(ERROR_EVENT_PENDING))

    def _run(
        self,
        command: str,
        new_state: GameState,
        start: Optional[GameState] = None,
        event: Optional[GameEvent] = None,
    ) -> Dict[str, Any]:
        start = start or self.state
        was_terminal = is_terminal(start)
        self.state = new_state
        outcome = get_outcome(new_state)

        new_goals = [g for g in new_state.goals_completed if g not in start.goals_completed]

        record = {
            'week': start.week,
            'day': start.day,
            'command': command,
            'error': new_state.error,
            'new_goals': new_goals,
        }
        self.history.append(record)
        logger.debug(f"{command}: error={new_state.error!r} goals={new_goals}")

        if outcome.is_terminal and not was_terminal:
            logger.info(f"Run ended: {outcome.status} {outcome.lose_reason or ''}".rstrip())

        self._autosave()

        return {
            'command': command,
            'state_changes': self._calculate_changes(start.to_dict(), new_state.to_dict()),
            'error': new_state.error,
            'event': event,
            'new_goals': new_goals,
            'outcome': outcome,
        }

    def _calculate_changes(self, start: Dict, end: Dict) -> Dict[str, Any]:
        """Calculate delta between two state snapshots."""
        changes = {}
        for key in start:
            if key in end and key not in ('meta', 'error'):
                if start[key] != end[key]:
                    changes[key] = {
                        'from': start[key],
                        'to': end[key],
                        'delta': end[key] - start[key],
                    }
        return changes

    def _autosave(self):
        if self.autosave and self.store is not None:
            self.save()

    # -------------------------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """Persist state plus RNG position and pending event. Never raises."""
        session = {
            'rng': self.rng.export_state(),
            'pendingEventId': self.pending_event.event_id if self.pending_event else None,
        }
        return save_state(self.state, self.store, key=self.storage_key, session=session)

    @classmethod
    def load(
        cls,
        store: Optional[KeyValueStore],
        events: Sequence[GameEvent] = EVENTS,
        upgrades: Sequence[Upgrade] = UPGRADES,
        storage_key: str = STORAGE_KEY,
        autosave: bool = True,
    ) -> Optional['GameEngine']:
        """Resume a saved run, or None when there is nothing valid to load."""
        record = load_session(store, key=storage_key)
        if record is None:
            return None

        state, session = record
        engine = cls(
            state=state,
            events=events,
            upgrades=upgrades,
            store=store,
            storage_key=storage_key,
            autosave=autosave,
        )

        rng_payload = session.get('rng')
        if rng_payload is not None:
            try:
                engine.rng.restore_state(rng_payload)
            except ValueError as e:
                logger.warning(f"Ignoring saved RNG state: {e}")

        pending_id = session.get('pendingEventId')
        if pending_id is not None and not is_terminal(state):
            engine.pending_event = get_event(pending_id, engine.events)
            if engine.pending_event is None:
                logger.warning(f"Ignoring unknown pending event: {pending_id}")

        return engine

    def get_state(self) -> GameState:
        """Return the current snapshot. States are immutable, so no copy is needed."""
        return self.state

    def get_outcome(self) -> Outcome:
        return get_outcome(self.state)

    def is_game_over(self) -> bool:
        return is_terminal(self.state)

    def get_valid_actions(self) -> List[Action]:
        """Actions the player can currently afford."""
        if self.pending_event or self.is_game_over():
            return []
        return [action for action in Action if can_afford(self.state, action)]

    def get_turn_summary(self) -> Dict[str, Any]:
        """Flat summary of the current state for display."""
        outcome = self.get_outcome()
        return {
            'week': self.state.week,
            'day': self.state.day,
            'energy': self.state.energy,
            'max_energy': self.state.max_energy,
            'morale': self.state.morale,
            'skill': self.state.skill,
            'money': self.state.money,
            'goals_completed': list(self.state.goals_completed),
            'goal_target': GOAL_TARGET,
            'pending_event': self.pending_event.event_id if self.pending_event else None,
            'status': outcome.status,
            'lose_reason': outcome.lose_reason,
            'error': self.state.error,
        }


# =============================================================================
# NEW GAME FACTORY
# =============================================================================

def new_game(seed: Optional[int] = None, store: Optional[KeyValueStore] = None) -> GameEngine:
    """Create a new run with default starting state."""
    return GameEngine(state=create_initial_state(), seed=seed, store=store)


# =============================================================================
# MAIN ENTRY (for testing)
# =============================================================================

if __name__ == "__main__":
    engine = new_game(seed=42)
    print("Initial state:", engine.get_turn_summary())

    for turn in range(5):
        valid = engine.get_valid_actions()
        action = valid[0] if valid else Action.REST
        result = engine.take_action(action)
        print(f"\nDay {turn + 1}: {action.value}")
        print(f"  State changes: {result['state_changes']}")
        result = engine.next_day()
        if engine.pending_event:
            first = engine.pending_event.choices[0]
            print(f"  Event: {engine.pending_event.title} -> {first.label}")
            engine.choose(first.choice_id)
        print(f"  Outcome: {result['outcome'].status}")
