# tests/reclaim_tests/config_test.py
import os
from dataclasses import replace

import pytest

import reclaim.config as config


def _build_with_env(monkeypatch, **env):
    """
    Helper: build a fresh ReclaimConfig with specific env overrides applied.
    Clears RECLAIM_* vars not provided so each build is clean. The module-level
    RECLAIMCFG is left alone (other modules hold a reference to it).
    """
    for k in list(os.environ.keys()):
        if k.startswith("RECLAIM_"):
            monkeypatch.delenv(k, raising=False)
    for k, v in env.items():
        monkeypatch.setenv(k, str(v))
    return config._build_from_env()


def test_defaults(monkeypatch):
    cfg = _build_with_env(monkeypatch)
    assert cfg.DEBUG is False
    assert cfg.METRICS_ENABLED is True
    assert cfg.WORKER_JOIN_TIMEOUT_S == 2.0
    assert cfg.WORKER_NAME_PREFIX == "ReclaimWorker"
    assert cfg.FAILURE_HISTORY == 64
    assert cfg.SOFT_LIMIT_MB is None
    assert isinstance(cfg.START_TS, float)


def test_env_overrides(monkeypatch):
    cfg = _build_with_env(
        monkeypatch,
        RECLAIM_DEBUG="yes",
        RECLAIM_METRICS="0",
        RECLAIM_WORKER_JOIN_S="0.25",
        RECLAIM_WORKER_PREFIX="Finalizer",
        RECLAIM_FAILURE_HISTORY="8",
        RECLAIM_SOFT_LIMIT_MB="512",
    )
    assert cfg.DEBUG is True
    assert cfg.METRICS_ENABLED is False
    assert cfg.WORKER_JOIN_TIMEOUT_S == 0.25
    assert cfg.WORKER_NAME_PREFIX == "Finalizer"
    assert cfg.FAILURE_HISTORY == 8
    assert cfg.SOFT_LIMIT_MB == 512.0


def test_bad_values_fall_back_to_defaults(monkeypatch):
    cfg = _build_with_env(
        monkeypatch,
        RECLAIM_WORKER_JOIN_S="soon",
        RECLAIM_FAILURE_HISTORY="lots",
        RECLAIM_SOFT_LIMIT_MB="",
    )
    assert cfg.WORKER_JOIN_TIMEOUT_S == 2.0
    assert cfg.FAILURE_HISTORY == 64
    assert cfg.SOFT_LIMIT_MB is None


def test_failure_history_is_at_least_one(monkeypatch):
    cfg = _build_with_env(monkeypatch, RECLAIM_FAILURE_HISTORY="0")
    assert cfg.FAILURE_HISTORY == 1


@pytest.mark.parametrize("raw, expected", [
    ("1", True), ("true", True), (" On ", True), ("y", True),
    ("0", False), ("false", False), ("nope", False),
])
def test_to_bool(raw, expected):
    assert config._to_bool(raw, default=not expected) is expected


def test_to_bool_none_uses_default():
    assert config._to_bool(None, True) is True
    assert config._to_bool(None, False) is False


def test_numeric_helpers():
    assert config._to_int("12", 0) == 12
    assert config._to_int(None, 7) == 7
    assert config._to_int("x", 7) == 7
    assert config._to_float("1.5", None) == 1.5
    assert config._to_float(None, 3.0) == 3.0
    assert config._to_float("abc", None) is None


def test_replace_gives_independent_copy():
    cfg = replace(config.RECLAIMCFG, WORKER_JOIN_TIMEOUT_S=0.5)
    assert cfg.WORKER_JOIN_TIMEOUT_S == 0.5
    assert cfg is not config.RECLAIMCFG
