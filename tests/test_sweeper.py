"""Tests for the periodic sweep task and settings."""

import asyncio
import json

from Relay_app.config import Settings
from Relay_app.core.hub import RelayHub
from Relay_app.core.sweeper import Sweeper, SWEEP_INTERVAL_SEC


def test_default_interval():
    assert SWEEP_INTERVAL_SEC == 30.0
    assert Settings().sweep_interval_sec == SWEEP_INTERVAL_SEC


def test_sweeper_reaps_dead_entries(make_conn):
    async def scenario():
        hub = RelayHub()
        p = make_conn()
        await hub.on_connect(p, "/stream")
        await hub.on_message(p, json.dumps({"type": "register", "deviceId": "dev1"}))
        p.live = False

        sweeper = Sweeper(hub, interval_sec=0.01)
        sweeper.start()
        assert sweeper.is_running
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert not sweeper.is_running
        assert hub.registry.producer_for("dev1") is None

    asyncio.run(scenario())


def test_sweeper_survives_sweep_errors():
    class BrokenHub:
        calls = 0

        async def sweep(self):
            BrokenHub.calls += 1
            raise RuntimeError("boom")

    async def scenario():
        sweeper = Sweeper(BrokenHub(), interval_sec=0.01)
        sweeper.start()
        await asyncio.sleep(0.1)
        assert sweeper.is_running
        await sweeper.stop()

    asyncio.run(scenario())
    assert BrokenHub.calls >= 2


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "4321")
    monkeypatch.setenv("RELAY_MODE", "single")
    s = Settings()
    assert s.port == 4321
    assert s.relay_mode == "single"


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("RELAY_MODE", raising=False)
    s = Settings()
    assert s.port == 3000
    assert s.relay_mode == "multi"
