"""
Agent Rogue - Game State

Immutable data model shared by the engine, goals, events, upgrades and the
save codec. Every transition builds a new GameState with dataclasses.replace;
nothing here is mutated in place.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Any, Optional, Tuple


# =============================================================================
# STARTING VALUES
# =============================================================================

STARTING_DAY = 1
STARTING_WEEK = 1
STARTING_MAX_ENERGY = 6
STARTING_MORALE = 5
STARTING_SKILL = 0
STARTING_MONEY = 10


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# META RECORDS
# All fields are present and defaulted so transitions never see a partial meta.
# =============================================================================

@dataclass(frozen=True)
class Effects:
    """Passive modifiers accumulated from upgrades."""

    energy_cost_delta: float = 0       # may be negative
    rest_morale_bonus: float = 0
    daily_income: float = 0
    daily_morale: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {
            'energyCostDelta': self.energy_cost_delta,
            'restMoraleBonus': self.rest_morale_bonus,
            'dailyIncome': self.daily_income,
            'dailyMorale': self.daily_morale,
        }


@dataclass(frozen=True)
class Counters:
    """Rolling streak and progress counters updated by the day engine."""

    trains_this_week: int = 0
    days_full_energy: int = 0
    zero_money_streak: int = 0
    low_morale_streak: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'trainsThisWeek': self.trains_this_week,
            'daysFullEnergy': self.days_full_energy,
            'zeroMoneyStreak': self.zero_money_streak,
            'lowMoraleStreak': self.low_morale_streak,
        }


@dataclass(frozen=True)
class GameMeta:
    """Upgrade levels, effects, counters and completed goals for one run."""

    upgrades: Dict[str, float] = field(default_factory=dict)
    effects: Effects = field(default_factory=Effects)
    counters: Counters = field(default_factory=Counters)
    goals_completed: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'upgrades': dict(self.upgrades),
            'effects': self.effects.to_dict(),
            'counters': self.counters.to_dict(),
            'goalsCompleted': list(self.goals_completed),
        }


# =============================================================================
# GAME STATE
# =============================================================================

@dataclass(frozen=True)
class GameState:
    """
    Complete state of a run.

    Invariants after every transition: 0 <= energy <= max_energy and
    morale, skill, money >= 0. `error` is advisory: it is set by a rejected
    command and cleared by the next successful one.
    """

    day: int = STARTING_DAY
    week: int = STARTING_WEEK
    energy: float = STARTING_MAX_ENERGY
    max_energy: float = STARTING_MAX_ENERGY
    morale: float = STARTING_MORALE
    skill: float = STARTING_SKILL
    money: float = STARTING_MONEY
    meta: GameMeta = field(default_factory=GameMeta)
    error: Optional[str] = None

    @property
    def effects(self) -> Effects:
        return self.meta.effects

    @property
    def counters(self) -> Counters:
        return self.meta.counters

    @property
    def goals_completed(self) -> Tuple[str, ...]:
        return self.meta.goals_completed

    def with_error(self, message: str) -> 'GameState':
        """Return the same state carrying an advisory error."""
        return replace(self, error=message)

    def with_counters(self, **changes) -> 'GameState':
        return replace(self, meta=replace(self.meta, counters=replace(self.meta.counters, **changes)))

    def with_effects(self, **changes) -> 'GameState':
        return replace(self, meta=replace(self.meta, effects=replace(self.meta.effects, **changes)))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase shape."""
        data: Dict[str, Any] = {
            'day': self.day,
            'week': self.week,
            'energy': self.energy,
            'maxEnergy': self.max_energy,
            'morale': self.morale,
            'skill': self.skill,
            'money': self.money,
            'meta': self.meta.to_dict(),
        }
        if self.error is not None:
            data['error'] = self.error
        return data


def create_initial_state() -> GameState:
    """Fresh run with canonical defaults (energy starts full)."""
    return GameState(
        day=STARTING_DAY,
        week=STARTING_WEEK,
        energy=STARTING_MAX_ENERGY,
        max_energy=STARTING_MAX_ENERGY,
        morale=STARTING_MORALE,
        skill=STARTING_SKILL,
        money=STARTING_MONEY,
        meta=GameMeta(),
    )


def clamp_stats(state: GameState) -> GameState:
    """Re-establish the stat invariants without touching anything else."""
    max_energy = max(0, state.max_energy)
    clamped = {
        'max_energy': max_energy,
        'energy': clamp(state.energy, 0, max_energy),
        'morale': max(0, state.morale),
        'skill': max(0, state.skill),
        'money': max(0, state.money),
    }
    if all(getattr(state, key) == value for key, value in clamped.items()):
        return state
    return replace(state, **clamped)


def apply_delta(
    state: GameState,
    energy: float = 0,
    morale: float = 0,
    skill: float = 0,
    money: float = 0,
) -> GameState:
    """Add stat deltas and clamp. Energy is capped at max_energy."""
    return clamp_stats(replace(
        state,
        energy=min(state.max_energy, state.energy + energy),
        morale=state.morale + morale,
        skill=state.skill + skill,
        money=state.money + money,
    ))
