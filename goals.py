"""
Goal evaluation and win/lose outcome for Agent Rogue.

Goals are checked in a fixed order. A goal completes once per run; its
reward is applied immediately and compounds into the goals checked after it.
A reward that satisfies an earlier goal completes it on a following pass of
the same evaluation.
"""

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from state import GameState, apply_delta


GOAL_TARGET = 3

LOSS_CONDITIONS = {
    'morale_zero_days': 2,
    'money_zero_days': 7,
}

MORALE_ZERO_DAYS = LOSS_CONDITIONS['morale_zero_days']
MONEY_ZERO_DAYS = LOSS_CONDITIONS['money_zero_days']

STATUS_ONGOING = 'ongoing'
STATUS_WON = 'won'
STATUS_LOST = 'lost'


@dataclass(frozen=True)
class Goal:
    """A goal predicate with an optional one-time reward."""
    goal_id: str
    description: str
    is_complete: Callable[[GameState], bool]
    reward: Optional[Callable[[GameState], GameState]] = None
    reward_text: str = ''


@dataclass(frozen=True)
class Outcome:
    status: str = STATUS_ONGOING
    lose_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != STATUS_ONGOING


# =============================================================================
# GOAL LIST
# =============================================================================

GOALS: Tuple[Goal, ...] = (
    Goal(
        goal_id='nest-egg',
        description='Accumulate $20',
        is_complete=lambda s: s.money >= 20,
        reward=lambda s: apply_delta(s, morale=1),
        reward_text='+1 morale',
    ),
    Goal(
        goal_id='consistent-training',
        description='Train 3 times in a week',
        is_complete=lambda s: s.counters.trains_this_week >= 3,
        reward=lambda s: apply_delta(s, skill=1),
        reward_text='+1 skill',
    ),
    Goal(
        goal_id='well-rested',
        description='End 3 days in a row at full energy',
        is_complete=lambda s: s.counters.days_full_energy >= 3,
        reward=lambda s: apply_delta(s, energy=1),
        reward_text='+1 energy',
    ),
    Goal(
        goal_id='high-morale',
        description='Reach 8 morale',
        is_complete=lambda s: s.morale >= 8,
        reward=lambda s: apply_delta(s, money=2),
        reward_text='+$2',
    ),
    Goal(
        goal_id='skilled-agent',
        description='Reach 10 skill',
        is_complete=lambda s: s.skill >= 10,
    ),
)


def get_goal(goal_id: str) -> Optional[Goal]:
    for goal in GOALS:
        if goal.goal_id == goal_id:
            return goal
    return None


def evaluate_goals(
    previous: GameState,
    candidate: GameState,
    goals: Tuple[Goal, ...] = GOALS,
) -> Tuple[GameState, List[str]]:
    """
    Complete any goals newly satisfied by `candidate`.

    Args:
        previous: State before the transition
        candidate: State after the transition, before goal rewards

    Returns:
        (state with rewards and updated goals_completed, newly completed ids)
    """
    # Previous entries keep their order; the candidate can only add to them.
    completed = list(previous.goals_completed)
    for goal_id in candidate.goals_completed:
        if goal_id not in completed:
            completed.append(goal_id)

    state = candidate
    newly_completed: List[str] = []

    # Each pass walks the list in order. A reward that satisfies an earlier
    # goal is picked up by the next pass, so the result is a fixed point.
    while True:
        completed_this_pass = 0
        for goal in goals:
            if goal.goal_id in completed:
                continue
            if not goal.is_complete(state):
                continue
            completed.append(goal.goal_id)
            newly_completed.append(goal.goal_id)
            completed_this_pass += 1
            if goal.reward:
                state = goal.reward(state)
        if not completed_this_pass:
            break

    if tuple(completed) == state.goals_completed:
        return state, newly_completed

    return replace(state, meta=replace(state.meta, goals_completed=tuple(completed))), newly_completed


def get_outcome(state: GameState) -> Outcome:
    """Derive the run outcome. Win takes priority over a simultaneous loss."""
    if len(state.goals_completed) >= GOAL_TARGET:
        return Outcome(STATUS_WON)

    if state.counters.low_morale_streak >= MORALE_ZERO_DAYS:
        return Outcome(STATUS_LOST, 'morale')

    if state.counters.zero_money_streak >= MONEY_ZERO_DAYS:
        return Outcome(STATUS_LOST, 'money')

    return Outcome(STATUS_ONGOING)


def is_terminal(state: GameState) -> bool:
    return get_outcome(state).is_terminal
