"""
Text template system for Agent Rogue.

Jinja2-based templates for the status HUD, event cards, the shop and
end-of-run banners. Templates on disk under this package override the
inline defaults.
"""

from pathlib import Path
from typing import Dict, Any, Optional
from jinja2 import Environment, FileSystemLoader, DictLoader, TemplateNotFound

# Template directory
PROMPT_DIR = Path(__file__).parent


class PromptEngine:
    """
    Jinja2-based template engine.

    Loads and renders templates for the text front-end.
    """

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = template_dir or PROMPT_DIR

        if self.template_dir.exists():
            self.env = Environment(
                loader=FileSystemLoader(str(self.template_dir)),
                trim_blocks=True,
                lstrip_blocks=True,
            )
        else:
            self.env = Environment(
                loader=DictLoader(DEFAULT_TEMPLATES),
                trim_blocks=True,
                lstrip_blocks=True,
            )

        # Register custom filters
        self.env.filters['currency'] = self._format_currency
        self.env.filters['signed'] = self._format_signed
        self.env.filters['number'] = self._format_number

    def _format_currency(self, value) -> str:
        """Format number as whole dollars."""
        try:
            return f"${int(float(value)):,}"
        except (ValueError, TypeError):
            return f"${value}"

    def _format_signed(self, value) -> str:
        """Format a delta with an explicit sign."""
        try:
            number = float(value)
        except (ValueError, TypeError):
            return str(value)
        text = self._format_number(number)
        return text if number < 0 else f"+{text}"

    def _format_number(self, value) -> str:
        """Drop a trailing .0 from whole floats."""
        try:
            number = float(value)
        except (ValueError, TypeError):
            return str(value)
        return str(int(number)) if number.is_integer() else f"{number:g}"

    def load_template(self, template_name: str) -> Optional[Any]:
        """Load a Jinja2 template by name, trying a .j2 suffix as well."""
        for name in (template_name, f"{template_name}.j2"):
            try:
                return self.env.get_template(name)
            except TemplateNotFound:
                continue
        return None

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render a template with context."""
        template = self.load_template(template_name)
        if template:
            return template.render(**context)

        # Fallback to inline template
        if template_name in DEFAULT_TEMPLATES:
            return self.env.from_string(DEFAULT_TEMPLATES[template_name]).render(**context)

        return f"[Template '{template_name}' not found]"


# =============================================================================
# INLINE FALLBACK TEMPLATES
# Used when template files don't exist
# =============================================================================

DEFAULT_TEMPLATES = {
    'hud/status.txt': '''\
Week {{ week }}, Day {{ day }}
Energy {{ energy | number }}/{{ max_energy | number }} | Morale {{ morale | number }} | Skill {{ skill | number }} | Money {{ money | currency }}
Goals {{ goals_completed | length }}/{{ goal_target }}
{% if error %}
! {{ error }}
{% endif %}
''',

    'events/card.txt': '''\
*** {{ title }} ***
{{ text }}
{% for choice in choices %}
  {{ loop.index }}) {{ choice.label }}
{% endfor %}
''',

    'shop/listing.txt': '''\
Upgrade shop ({{ money | currency }} available)
{% for item in items %}
  {{ item.upgrade.upgrade_id }}: {{ item.upgrade.name }} - {{ item.upgrade.cost | currency }}
    {{ item.upgrade.description }}{% if item.maxed %} [max level]{% elif not item.affordable %} [can't afford]{% endif %}

{% endfor %}
''',

    'goals/checklist.txt': '''\
Goals ({{ completed_count }}/{{ goal_target }} to win)
{% for goal in goals %}
  [{{ 'x' if goal.done else ' ' }}] {{ goal.description }}{% if goal.reward_text %} ({{ goal.reward_text }}){% endif %}

{% endfor %}
''',

    'outcomes/won.txt': '''\
You completed {{ completed_count }} goals by week {{ week }}, day {{ day }}.
The agency is impressed. You win!
''',

    'outcomes/lost.txt': '''\
{% if lose_reason == 'morale' %}
Your morale hit rock bottom for {{ streak }} days straight. You walk away from the job.
{% else %}
You were broke for {{ streak }} days straight. The rent collector wins this round.
{% endif %}
Game over in week {{ week }}, day {{ day }}.
''',

    'turn/summary.txt': '''\
{% for key, change in changes.items() %}
  {{ key }}: {{ change.from | number }} -> {{ change.to | number }} ({{ change.delta | signed }})
{% endfor %}
{% for goal in new_goals %}
  Goal complete: {{ goal }}
{% endfor %}
''',

    'history/recent.txt': '''\
Recent commands
{% for record in records %}
  W{{ record.week }} D{{ record.day }} {{ record.command }}{% if record.error %} ! {{ record.error }}{% endif %}{% for goal in record.new_goals %} [goal: {{ goal }}]{% endfor %}

{% else %}
  (none yet)
{% endfor %}
''',
}


# Global prompt engine instance
_engine: Optional[PromptEngine] = None


def get_prompt_engine() -> PromptEngine:
    """Get or create the global prompt engine."""
    global _engine
    if _engine is None:
        _engine = PromptEngine()
    return _engine


def render_template(template_name: str, context: Dict[str, Any]) -> str:
    """Convenience function to render a template."""
    return get_prompt_engine().render(template_name, context)
