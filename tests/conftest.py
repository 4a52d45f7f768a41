"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the statistics engine test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator

    from pf1_engine.engine.formula import FormulaEvaluator
    from pf1_engine.models.actor import ActorSnapshot
    from pf1_engine.rules.ruleset import Ruleset


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache(
    tmp_path_factory: pytest.TempPathFactory,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Reset the settings cache and isolate tests from local .env files."""
    from pf1_engine.core.config import clear_settings_cache

    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    for key in (
        "PF1_ENGINE_DEBUG",
        "PF1_ENGINE_LOG_LEVEL",
        "PF1_ENGINE_JSON_LOGS",
        "PF1_ENGINE_LOG_FILE",
        "PF1_ENGINE_ENGINE_TIE_POLICY",
        "PF1_ENGINE_ENGINE_WARN_ON_FORMULA_ERROR",
        "PF1_ENGINE_ENGINE_RULESET_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "PF1_ENGINE_DEBUG": "true",
        "PF1_ENGINE_LOG_LEVEL": "DEBUG",
        "PF1_ENGINE_ENGINE_TIE_POLICY": "merge",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_ability_scores() -> dict[str, int]:
    """Provide sample ability scores.

    Returns:
        Dictionary of ability scores keyed by ability.
    """
    return {
        "str": 16,
        "dex": 14,
        "con": 12,
        "int": 10,
        "wis": 13,
        "cha": 8,
    }


@pytest.fixture
def sample_actor_data(sample_ability_scores: dict[str, int]) -> dict[str, Any]:
    """Provide sample actor data for testing.

    A level 3 fighter in chainmail with a ring of protection and a
    temporary buff.

    Args:
        sample_ability_scores: Ability scores.

    Returns:
        Dictionary of actor data.
    """
    return {
        "name": "Valeros",
        "abilities": {key: {"value": value} for key, value in sample_ability_scores.items()},
        "skills": {
            "clm": {"ability": "str", "rank": 3, "acp": True, "name": "Climb"},
            "per": {"ability": "wis", "rank": 3, "name": "Perception"},
            "ste": {"ability": "dex", "rank": 0, "acp": True, "name": "Stealth"},
        },
        "items": [
            {
                "id": "fighter",
                "name": "Fighter",
                "type": "class",
                "class_data": {
                    "level": 3,
                    "hp": 24,
                    "bab": "high",
                    "saves": {"fort": "high", "ref": "low", "will": "low"},
                    "class_skills": ["clm"],
                },
            },
            {
                "id": "chainmail",
                "name": "Chainmail",
                "type": "equipment",
                "equipped": True,
                "armor": {"value": 6, "max_dex": 2, "acp": 5},
            },
            {
                "id": "ring",
                "name": "Ring of Protection +1",
                "type": "equipment",
                "equipped": True,
                "changes": [
                    {"formula": "1", "category": "ac", "target": "ac", "modifier": "deflection"},
                ],
            },
            {
                "id": "bless",
                "name": "Bless",
                "type": "buff",
                "subtype": "temp",
                "active": True,
                "changes": [
                    {"formula": "1", "category": "attack", "target": "attack", "modifier": "morale"},
                ],
            },
        ],
    }


@pytest.fixture
def sample_actor(sample_actor_data: dict[str, Any]) -> ActorSnapshot:
    """Create a validated sample ActorSnapshot.

    Args:
        sample_actor_data: Actor data dictionary.

    Returns:
        ActorSnapshot instance.
    """
    from pf1_engine.models.actor import load_snapshot

    return load_snapshot(sample_actor_data)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def ruleset() -> Ruleset:
    """Provide the default Pathfinder 1E ruleset."""
    from pf1_engine.rules.ruleset import default_ruleset

    return default_ruleset()


@pytest.fixture
def evaluator() -> FormulaEvaluator:
    """Provide a formula evaluator."""
    from pf1_engine.engine.formula import FormulaEvaluator

    return FormulaEvaluator()
