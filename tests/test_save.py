"""
Tests for the persistence codec and key-value stores.
"""

import json
import logging
from dataclasses import replace

import pytest

from engine import Action, advance_day, apply_action, apply_upgrade
from save import (
    STORAGE_KEY, JsonFileStore, KeyValueStore, MemoryStore, SaveDataError, StorageError,
    clear_save, list_saves, load_session, load_state, sanitize_state, save_state, slot_key,
)
from state import GameState, create_initial_state


def played_state() -> GameState:
    state = create_initial_state()
    state = apply_action(state, Action.WORK)
    state = apply_action(state, Action.TRAIN)
    state = advance_day(state)
    state = apply_upgrade(state, 'coffeeSubscription')
    return apply_action(state, 'dance')


def stored(payload) -> MemoryStore:
    return MemoryStore({STORAGE_KEY: json.dumps(payload)})


class BrokenStore(KeyValueStore):
    """Store whose every operation fails."""

    def get_item(self, key):
        raise StorageError("disk on fire")

    def set_item(self, key, value):
        raise StorageError("disk on fire")

    def remove_item(self, key):
        raise StorageError("disk on fire")

    def keys(self):
        raise StorageError("disk on fire")


class FailingStore(KeyValueStore):
    """Custom backend raising errors outside the StorageError family."""

    def get_item(self, key):
        raise RuntimeError("backend offline")

    def set_item(self, key, value):
        raise RuntimeError("backend offline")

    def remove_item(self, key):
        raise RuntimeError("backend offline")

    def keys(self):
        raise RuntimeError("backend offline")


class TestRoundTrip:
    """Test save then load."""

    def test_roundtrip_memory_store(self):
        """A saved state loads back deep-equal."""
        store = MemoryStore()
        state = played_state()

        assert save_state(state, store)
        loaded = load_state(store)

        assert loaded == state
        assert loaded.error == state.error
        assert loaded.meta.upgrades == {'coffeeSubscription': 1}

    def test_roundtrip_file_store(self, tmp_path):
        store = JsonFileStore(tmp_path / 'saves')
        state = played_state()

        assert save_state(state, store)

        assert (tmp_path / 'saves' / f'{STORAGE_KEY}.json').exists()
        assert load_state(store) == state

    def test_saved_json_uses_camel_case(self):
        store = MemoryStore()
        save_state(create_initial_state(), store)

        data = json.loads(store.get_item(STORAGE_KEY))

        assert data['maxEnergy'] == 6
        assert data['meta']['goalsCompleted'] == []

    def test_session_extras(self):
        store = MemoryStore()
        save_state(create_initial_state(), store, session={'rng': {'seed': 5}, 'pendingEventId': 'bug-bash'})

        state, session = load_session(store)

        assert state == create_initial_state()
        assert session == {'rng': {'seed': 5}, 'pendingEventId': 'bug-bash'}

    def test_session_extras_sanitized(self):
        payload = create_initial_state().to_dict()
        payload['session'] = {'rng': 7, 'pendingEventId': 3, 'extra': True}

        _, session = load_session(stored(payload))

        assert session == {'rng': None, 'pendingEventId': None}


class TestRejectedData:
    """Test loads that fall back to no saved state."""

    def test_missing_key(self):
        assert load_state(MemoryStore()) is None

    def test_corrupted_json(self):
        store = MemoryStore({STORAGE_KEY: '{not json'})

        assert load_state(store) is None

    @pytest.mark.parametrize('payload', [
        [1, 2, 3],
        'agent',
        {'foo': 'bar'},
    ])
    def test_wrong_shape(self, payload):
        assert load_state(stored(payload)) is None

    @pytest.mark.parametrize('field, value', [
        ('energy', None),
        ('money', '10'),
        ('morale', True),
        ('skill', [1]),
    ])
    def test_bad_required_number(self, field, value):
        payload = create_initial_state().to_dict()
        payload[field] = value

        assert load_state(stored(payload)) is None

    def test_non_finite_number(self):
        payload = create_initial_state().to_dict()
        text = json.dumps(payload).replace('"money": 10', '"money": NaN')

        assert load_state(MemoryStore({STORAGE_KEY: text})) is None

    def test_integer_too_large_for_float(self):
        payload = create_initial_state().to_dict()
        text = json.dumps(payload).replace('"day": 1', '"day": 1' + '0' * 400)

        assert load_state(MemoryStore({STORAGE_KEY: text})) is None

    def test_oversized_meta_numbers_fall_back(self):
        payload = create_initial_state().to_dict()
        payload['meta']['upgrades'] = {'skillBook': 10 ** 400, 'coffeeSubscription': 1}
        payload['meta']['effects'] = {'dailyIncome': 10 ** 400}
        payload['meta']['counters'] = {'trainsThisWeek': -(10 ** 400)}

        state = load_state(stored(payload))

        assert state.meta.upgrades == {'coffeeSubscription': 1}
        assert state.effects.daily_income == 0
        assert state.counters.trains_this_week == 0

    def test_deeply_nested_json(self):
        assert load_state(MemoryStore({STORAGE_KEY: '[' * 200000})) is None
        assert load_session(MemoryStore({STORAGE_KEY: '{"a":' * 200000})) is None

    def test_sanitize_raises_for_callers(self):
        with pytest.raises(SaveDataError):
            sanitize_state({'day': 1})


class TestSanitize:
    """Test clamping and defaulting of untrusted fields."""

    def test_tampered_stats_are_clamped(self):
        payload = create_initial_state().to_dict()
        payload.update(energy=999, maxEnergy=-5, morale=-3, money=-1, skill=-2)

        state = load_state(stored(payload))

        assert state.max_energy == 0
        assert state.energy == 0
        assert (state.morale, state.skill, state.money) == (0, 0, 0)

    def test_energy_capped_by_max(self):
        payload = create_initial_state().to_dict()
        payload['energy'] = 10

        assert load_state(stored(payload)).energy == 6

    def test_missing_meta_uses_defaults(self):
        payload = create_initial_state().to_dict()
        del payload['meta']

        assert load_state(stored(payload)).meta == create_initial_state().meta

    def test_upgrade_levels(self):
        payload = create_initial_state().to_dict()
        payload['meta']['upgrades'] = {'a': 2, 'b': 'x', 'c': '3', 'd': None, 'e': -1, 'f': False}

        state = load_state(stored(payload))

        assert state.meta.upgrades == {'a': 2, 'c': 3}

    def test_effects(self):
        payload = create_initial_state().to_dict()
        payload['meta']['effects'] = {'energyCostDelta': -2, 'dailyIncome': -1, 'restMoraleBonus': 'x'}

        effects = load_state(stored(payload)).effects

        assert effects.energy_cost_delta == -2
        assert effects.daily_income == 0
        assert effects.rest_morale_bonus == 0
        assert effects.daily_morale == 0

    def test_counters(self):
        payload = create_initial_state().to_dict()
        payload['meta']['counters'] = {'trainsThisWeek': 2, 'zeroMoneyStreak': -4}

        counters = load_state(stored(payload)).counters

        assert counters.trains_this_week == 2
        assert counters.zero_money_streak == 0
        assert counters.low_morale_streak == 0

    def test_goals_deduplicated(self):
        payload = create_initial_state().to_dict()
        payload['meta']['goalsCompleted'] = ['nest-egg', 3, 'nest-egg', 'well-rested']

        assert load_state(stored(payload)).goals_completed == ('nest-egg', 'well-rested')

    def test_non_string_error_dropped(self):
        payload = create_initial_state().to_dict()
        payload['error'] = 42

        assert load_state(stored(payload)).error is None


class TestStoreFailures:
    """Test that persistence never raises."""

    def test_no_store_is_noop(self):
        assert save_state(create_initial_state(), None) is False
        assert load_state(None) is None
        assert list_saves(None) == []
        assert clear_save(None) is False

    def test_broken_store(self, caplog):
        store = BrokenStore()

        with caplog.at_level(logging.WARNING):
            assert save_state(create_initial_state(), store) is False
            assert load_state(store) is None
            assert clear_save(store) is False
            assert list_saves(store) == []

        assert 'disk on fire' in caplog.text

    def test_unexpected_store_errors_are_swallowed(self, caplog):
        store = FailingStore()

        with caplog.at_level(logging.WARNING):
            assert save_state(create_initial_state(), store) is False
            assert load_state(store) is None
            assert load_session(store) is None
            assert clear_save(store) is False
            assert list_saves(store) == []

        assert 'backend offline' in caplog.text

    def test_unserializable_state(self, caplog):
        store = MemoryStore()
        state = replace(create_initial_state(), money=float('nan'))

        with caplog.at_level(logging.ERROR):
            assert save_state(state, store) is False

        assert store.keys() == []
        assert 'serialize' in caplog.text


class TestSlots:
    """Test slot keys and listing."""

    def test_slot_keys(self):
        assert slot_key() == STORAGE_KEY
        assert slot_key(3) == f'{STORAGE_KEY}-3'

    def test_list_and_clear(self, tmp_path):
        store = JsonFileStore(tmp_path)
        for slot in (1, 2, 5):
            save_state(create_initial_state(), store, key=slot_key(slot))
        store.set_item('notes', '{}')

        assert list_saves(store) == [1, 2, 5]

        assert clear_save(store, slot_key(2))
        assert list_saves(store) == [1, 5]
        assert load_state(store, slot_key(2)) is None
