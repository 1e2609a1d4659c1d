"""
Save / load for Agent Rogue.

State is stored as JSON text under one key of a key-value store. Stored
data is untrusted: every field is re-validated on load, and anything that
goes wrong (missing store, store failures, bad JSON, bad shape) is logged and
treated as "no saved state". Nothing in this module raises to the caller.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple
import json
import logging
import math
import os

from state import Counters, Effects, GameMeta, GameState, create_initial_state

logger = logging.getLogger(__name__)


STORAGE_KEY = 'agent-rogue'

SAVE_DIR = Path(os.environ.get('AGENT_ROGUE_SAVE_DIR', 'data/savegames'))

REQUIRED_NUMBERS = ('day', 'week', 'energy', 'maxEnergy', 'morale', 'skill', 'money')


# =============================================================================
# EXCEPTIONS
# =============================================================================

class SaveError(Exception):
    """Base exception for persistence errors."""
    pass


class StorageError(SaveError):
    """The backing store could not be read or written."""
    pass


class SaveDataError(SaveError):
    """Stored data is corrupted or has the wrong shape."""
    pass


# =============================================================================
# KEY-VALUE STORES
# =============================================================================

class KeyValueStore(ABC):
    """Durable string store. Implementations raise StorageError on I/O failure."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass


class MemoryStore(KeyValueStore):
    """In-process store, useful for tests and throwaway runs."""

    def __init__(self, items: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class JsonFileStore(KeyValueStore):
    """One <key>.json file per key inside a directory."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else SAVE_DIR

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            if not path.exists():
                return None
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix('.json.tmp')
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding='utf-8')
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            raise StorageError(f"Cannot delete {path}: {e}") from e

    def keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(f.stem for f in self.directory.glob("*.json"))


# =============================================================================
# SANITIZERS
# =============================================================================

def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid stat
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def _coerce_number(value: Any) -> Optional[float]:
    """Accept finite numbers and numeric strings, reject everything else."""
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
        if _is_number(number):
            return int(number) if number.is_integer() else number
    return None


def _sanitize_upgrades(value: Any) -> Dict[str, float]:
    if not isinstance(value, dict):
        return {}
    upgrades = {}
    for key, entry in value.items():
        level = _coerce_number(entry)
        if level is not None and level >= 0:
            upgrades[str(key)] = level
    return upgrades


def _sanitize_effects(value: Any) -> Effects:
    if not isinstance(value, dict):
        return Effects()

    def read(key: str, allow_negative: bool = False) -> float:
        entry = value.get(key)
        if _is_number(entry) and (allow_negative or entry >= 0):
            return entry
        return 0

    return Effects(
        energy_cost_delta=read('energyCostDelta', allow_negative=True),
        rest_morale_bonus=read('restMoraleBonus'),
        daily_income=read('dailyIncome'),
        daily_morale=read('dailyMorale'),
    )


def _sanitize_counters(value: Any) -> Counters:
    if not isinstance(value, dict):
        return Counters()

    def read(key: str) -> int:
        entry = value.get(key)
        if _is_number(entry) and entry >= 0:
            return entry
        return 0

    return Counters(
        trains_this_week=read('trainsThisWeek'),
        days_full_energy=read('daysFullEnergy'),
        zero_money_streak=read('zeroMoneyStreak'),
        low_morale_streak=read('lowMoraleStreak'),
    )


def _sanitize_goals(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    seen: List[str] = []
    for entry in value:
        if isinstance(entry, str) and entry not in seen:
            seen.append(entry)
    return tuple(seen)


def sanitize_state(value: Any) -> GameState:
    """
    Rebuild a GameState from untrusted data.

    Raises:
        SaveDataError: If the top level is not an object or a required
            numeric field is missing or not finite
    """
    if not isinstance(value, dict):
        raise SaveDataError("Save data must be a JSON object.")

    numbers = {}
    for key in REQUIRED_NUMBERS:
        entry = value.get(key)
        if not _is_number(entry):
            raise SaveDataError(f"Field '{key}' must be a finite number, got {entry!r}.")
        numbers[key] = entry

    meta_raw = value.get('meta')
    if isinstance(meta_raw, dict):
        meta = GameMeta(
            upgrades=_sanitize_upgrades(meta_raw.get('upgrades')),
            effects=_sanitize_effects(meta_raw.get('effects')),
            counters=_sanitize_counters(meta_raw.get('counters')),
            goals_completed=_sanitize_goals(meta_raw.get('goalsCompleted')),
        )
    else:
        meta = create_initial_state().meta

    max_energy = max(0, numbers['maxEnergy'])
    error = value.get('error')

    return GameState(
        day=numbers['day'],
        week=numbers['week'],
        energy=max(0, min(numbers['energy'], max_energy)),
        max_energy=max_energy,
        morale=max(0, numbers['morale']),
        skill=max(0, numbers['skill']),
        money=max(0, numbers['money']),
        meta=meta,
        error=error if isinstance(error, str) else None,
    )


# =============================================================================
# SAVE / LOAD
# =============================================================================

def slot_key(slot: int = 1) -> str:
    """Storage key for a save slot. Slot 1 is the bare key."""
    return STORAGE_KEY if slot == 1 else f"{STORAGE_KEY}-{slot}"


def save_state(
    state: GameState,
    store: Optional[KeyValueStore],
    key: str = STORAGE_KEY,
    session: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Serialize state to the store.

    Returns True when written. Serialization or storage failures are
    logged and swallowed; a missing store is a silent no-op.
    """
    if store is None:
        return False

    payload = state.to_dict()
    if session is not None:
        payload['session'] = session

    try:
        serialized = json.dumps(payload, allow_nan=False)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize game state: {e}")
        return False

    try:
        store.set_item(key, serialized)
    except Exception as e:
        logger.warning(f"Save skipped: {e}")
        return False

    logger.debug(f"Saved game state to '{key}'")
    return True


def _read_payload(store: Optional[KeyValueStore], key: str) -> Optional[Any]:
    if store is None:
        return None

    try:
        raw = store.get_item(key)
    except Exception as e:
        logger.warning(f"Failed to load game state: {e}")
        return None

    if not raw:
        return None

    try:
        return json.loads(raw)
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning(f"Saved game state is not valid JSON: {e}")
        return None


def load_state(store: Optional[KeyValueStore], key: str = STORAGE_KEY) -> Optional[GameState]:
    """Load and validate the saved state, or None if there is nothing usable."""
    return _parse_state(_read_payload(store, key), key)


def _parse_state(payload: Any, key: str) -> Optional[GameState]:
    if payload is None:
        return None

    try:
        state = sanitize_state(payload)
    except SaveDataError as e:
        logger.warning(f"Rejected saved game state: {e}")
        return None

    logger.debug(f"Loaded game state from '{key}'")
    return state


def load_session(
    store: Optional[KeyValueStore],
    key: str = STORAGE_KEY,
) -> Optional[Tuple[GameState, Dict[str, Any]]]:
    """
    Load the state plus session extras saved by GameEngine.save().

    The extras dict always has 'rng' (mapping or None) and
    'pendingEventId' (str or None); anything else is dropped.
    """
    payload = _read_payload(store, key)
    state = _parse_state(payload, key)
    if state is None:
        return None

    raw_session = payload.get('session')
    if not isinstance(raw_session, dict):
        raw_session = {}

    rng_state = raw_session.get('rng')
    pending = raw_session.get('pendingEventId')
    session = {
        'rng': rng_state if isinstance(rng_state, dict) else None,
        'pendingEventId': pending if isinstance(pending, str) else None,
    }
    return state, session


def clear_save(store: Optional[KeyValueStore], key: str = STORAGE_KEY) -> bool:
    """Delete a save. Returns True when the store accepted the removal."""
    if store is None:
        return False
    try:
        store.remove_item(key)
    except Exception as e:
        logger.warning(f"Failed to clear saved game: {e}")
        return False
    return True


def list_saves(store: Optional[KeyValueStore]) -> List[int]:
    """List occupied save slots."""
    if store is None:
        return []
    try:
        keys = store.keys()
    except Exception as e:
        logger.warning(f"Failed to list saves: {e}")
        return []

    slots = []
    for key in keys:
        if key == STORAGE_KEY:
            slots.append(1)
        elif key.startswith(f"{STORAGE_KEY}-"):
            try:
                slots.append(int(key[len(STORAGE_KEY) + 1:]))
            except ValueError:
                continue

    return sorted(slots)
