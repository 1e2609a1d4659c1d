"""
Upgrade shop for Agent Rogue.

Upgrades cost money and either grant an immediate stat bonus or adjust the
passive effects that bias future actions and day advances. Repeated
purchases stack up to the upgrade's level cap.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from goals import evaluate_goals, is_terminal
from state import GameState, clamp_stats

ERROR_RUN_OVER = 'The run is over.'
ERROR_UNKNOWN_UPGRADE = 'Unknown upgrade.'
ERROR_MAX_LEVEL = 'Upgrade already at maximum level.'
ERROR_NOT_ENOUGH_MONEY = 'Not enough money for that upgrade.'

# energyCostDelta never drops below this
MIN_ENERGY_COST_DELTA = -3


@dataclass(frozen=True)
class Upgrade:
    """A purchasable upgrade."""
    upgrade_id: str
    name: str
    description: str
    cost: float
    apply: Callable[[GameState], GameState]
    repeatable: bool = False
    max_level: Optional[int] = None

    @property
    def level_cap(self) -> float:
        if self.repeatable:
            return self.max_level if self.max_level is not None else math.inf
        return self.max_level if self.max_level is not None else 1


# =============================================================================
# UPGRADE EFFECTS
# =============================================================================

def _energy_drink_fridge(state: GameState) -> GameState:
    max_energy = state.max_energy + 2
    return replace(state, max_energy=max_energy, energy=min(max_energy, state.energy + 2))


def _ergonomic_chair(state: GameState) -> GameState:
    return state.with_effects(daily_morale=state.effects.daily_morale + 1)


def _skill_book(state: GameState) -> GameState:
    return replace(state, skill=state.skill + 1)


def _time_management_course(state: GameState) -> GameState:
    delta = max(state.effects.energy_cost_delta - 1, MIN_ENERGY_COST_DELTA)
    return state.with_effects(energy_cost_delta=delta)


def _side_hustle(state: GameState) -> GameState:
    return state.with_effects(daily_income=state.effects.daily_income + 2)


def _coffee_subscription(state: GameState) -> GameState:
    return state.with_effects(rest_morale_bonus=state.effects.rest_morale_bonus + 1)


UPGRADES: Tuple[Upgrade, ...] = (
    Upgrade(
        upgrade_id='energyDrinkFridge',
        name='Energy Drink Fridge',
        description='Increase max energy by 2.',
        cost=12,
        apply=_energy_drink_fridge,
    ),
    Upgrade(
        upgrade_id='ergonomicChair',
        name='Ergonomic Chair',
        description='+1 morale at the start of each day.',
        cost=15,
        apply=_ergonomic_chair,
    ),
    Upgrade(
        upgrade_id='skillBook',
        name='Skill Book',
        description='+1 skill immediately. Max 3 purchases.',
        cost=10,
        apply=_skill_book,
        repeatable=True,
        max_level=3,
    ),
    Upgrade(
        upgrade_id='timeManagementCourse',
        name='Time Management Course',
        description='Actions cost 1 less energy (min 0).',
        cost=20,
        apply=_time_management_course,
    ),
    Upgrade(
        upgrade_id='sideHustle',
        name='Side Hustle',
        description='Earn an extra $2 each new day.',
        cost=18,
        apply=_side_hustle,
    ),
    Upgrade(
        upgrade_id='coffeeSubscription',
        name='Coffee Subscription',
        description='+1 morale when you Rest.',
        cost=8,
        apply=_coffee_subscription,
    ),
)


# =============================================================================
# SHOP
# =============================================================================

def get_upgrade(upgrade_id: str, catalog: Sequence[Upgrade] = UPGRADES) -> Optional[Upgrade]:
    """Get upgrade by ID."""
    for upgrade in catalog:
        if upgrade.upgrade_id == upgrade_id:
            return upgrade
    return None


def current_level(state: GameState, upgrade_id: str) -> float:
    return state.meta.upgrades.get(upgrade_id, 0)


def available_upgrades(state: GameState, catalog: Sequence[Upgrade] = UPGRADES) -> List[Dict[str, Any]]:
    """Shop listing with level and affordability for each upgrade."""
    listing = []
    for upgrade in catalog:
        level = current_level(state, upgrade.upgrade_id)
        maxed = level >= upgrade.level_cap
        listing.append({
            'upgrade': upgrade,
            'level': level,
            'maxed': maxed,
            'affordable': not maxed and state.money >= upgrade.cost,
        })
    return listing


def apply_upgrade(
    state: GameState,
    upgrade_id: str,
    catalog: Sequence[Upgrade] = UPGRADES,
) -> GameState:
    """
    Buy one level of an upgrade.

    Rejections return the state with an advisory error and nothing else
    changed. On success the cost is deducted, the level incremented, the
    effect applied and stats clamped.
    """
    if is_terminal(state):
        return state.with_error(ERROR_RUN_OVER)

    upgrade = get_upgrade(upgrade_id, catalog)
    if upgrade is None:
        return state.with_error(ERROR_UNKNOWN_UPGRADE)

    level = current_level(state, upgrade_id)
    if level >= upgrade.level_cap:
        return state.with_error(ERROR_MAX_LEVEL)

    if state.money < upgrade.cost:
        return state.with_error(ERROR_NOT_ENOUGH_MONEY)

    paid = replace(state, money=state.money - upgrade.cost, error=None)
    applied = upgrade.apply(paid)

    levels = dict(applied.meta.upgrades)
    levels[upgrade_id] = level + 1
    purchased = clamp_stats(replace(applied, meta=replace(applied.meta, upgrades=levels), error=None))

    result, _ = evaluate_goals(state, purchased)
    return result
