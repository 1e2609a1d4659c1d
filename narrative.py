"""
Narrative views for Agent Rogue.

Turns engine state into display text through the prompt templates.
Read-only: nothing here changes game state.
"""

from typing import Dict, Any, Iterable, Optional, Sequence

from events import GameEvent
from goals import GOAL_TARGET, GOALS, Goal, get_outcome
from prompts import PromptEngine, get_prompt_engine
from state import GameState
from upgrades import UPGRADES, Upgrade, available_upgrades


class NarrativeEngine:
    """
    Central text coordinator.

    Bridges game state → templates → display text.
    """

    def __init__(self, prompts: Optional[PromptEngine] = None):
        self.prompts = prompts or get_prompt_engine()

    def _state_context(self, state: GameState) -> Dict[str, Any]:
        return {
            'week': state.week,
            'day': state.day,
            'energy': state.energy,
            'max_energy': state.max_energy,
            'morale': state.morale,
            'skill': state.skill,
            'money': state.money,
            'goals_completed': state.goals_completed,
            'completed_count': len(state.goals_completed),
            'goal_target': GOAL_TARGET,
            'error': state.error,
        }

    def render_status(self, state: GameState) -> str:
        """Status HUD: calendar, stats, goal progress and any advisory error."""
        return self.prompts.render('hud/status.txt', self._state_context(state))

    def render_event(self, event: GameEvent) -> str:
        return self.prompts.render('events/card.txt', {
            'title': event.title,
            'text': event.text,
            'choices': event.choices,
        })

    def render_shop(self, state: GameState, upgrades: Sequence[Upgrade] = UPGRADES) -> str:
        return self.prompts.render('shop/listing.txt', {
            'money': state.money,
            'items': available_upgrades(state, upgrades),
        })

    def render_goals(self, state: GameState, goals: Sequence[Goal] = GOALS) -> str:
        context = self._state_context(state)
        context['goals'] = [
            {
                'description': goal.description,
                'reward_text': goal.reward_text,
                'done': goal.goal_id in state.goals_completed,
            }
            for goal in goals
        ]
        return self.prompts.render('goals/checklist.txt', context)

    def render_outcome(self, state: GameState) -> Optional[str]:
        """End-of-run banner, or None while the run is ongoing."""
        outcome = get_outcome(state)
        if not outcome.is_terminal:
            return None

        context = self._state_context(state)
        if outcome.status == 'won':
            return self.prompts.render('outcomes/won.txt', context)

        if outcome.lose_reason == 'morale':
            context['streak'] = state.counters.low_morale_streak
        else:
            context['streak'] = state.counters.zero_money_streak
        context['lose_reason'] = outcome.lose_reason
        return self.prompts.render('outcomes/lost.txt', context)

    def render_turn(self, result: Dict[str, Any]) -> str:
        """Stat changes and new goals from a GameEngine command result."""
        return self.prompts.render('turn/summary.txt', {
            'changes': result.get('state_changes', {}),
            'new_goals': result.get('new_goals', []),
        })

    def render_history(self, history: Iterable[Dict[str, Any]], limit: int = 10) -> str:
        """The last `limit` command records from GameEngine.history."""
        records = list(history)[-limit:] if limit else []
        return self.prompts.render('history/recent.txt', {'records': records})
