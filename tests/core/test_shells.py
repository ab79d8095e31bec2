"""Tests for shell ballistics, detonation and chained explosions."""

from dataclasses import replace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from photoburst.config import CHAINED_PATTERNS, PATTERNS, FireworksConfig
from photoburst.core.explosions import ExplosionEngine
from photoburst.core.particles import ParticleRingBuffer
from photoburst.core.shells import (
    CHAIN_LIFT,
    CHAIN_STRENGTH,
    DETONATION_FLOOR,
    MAX_DT,
    SHELL_GRAVITY_FACTOR,
    SHELL_SLOTS_RESERVED,
    PendingExplosion,
    ShellSimulator,
    ShellState,
    clamp_dt,
)


def _simulator(seed: int = 99, **config) -> ShellSimulator:
    rng = np.random.default_rng(seed)
    engine = ExplosionEngine(ParticleRingBuffer(32000), rng=rng)
    return ShellSimulator(engine, FireworksConfig(**config), rng=rng)


@pytest.fixture
def sim():
    return _simulator()


class TestLaunch:
    def test_launch_from_ground(self, sim):
        shell = sim.launch_shell(2.0, -3.0, time=5.0)
        cfg = sim.cfg
        assert shell.position == (2.0, cfg.ground_y, -3.0)
        assert cfg.base_shell_speed <= shell.velocity[1] <= cfg.base_shell_speed + cfg.shell_speed_jitter
        assert 5.0 + 1.0 <= shell.explode_at <= 5.0 + 1.6
        assert 0.18 <= shell.chained_delay <= 0.42
        assert shell.state is ShellState.LAUNCHED
        assert sim.active_count == 1

    def test_horizontal_drift_follows_origin(self, sim):
        shell = sim.launch_shell(10.0, 5.0, time=0.0)
        assert 10.0 * 0.18 - 0.45 <= shell.velocity[0] <= 10.0 * 0.18 + 0.45
        assert 5.0 * 0.12 - 0.35 <= shell.velocity[2] <= 5.0 * 0.12 + 0.35

    def test_shell_ids_unique(self, sim):
        ids = {sim.launch_shell(0, 0, 0.0).id for _ in range(20)}
        assert len(ids) == 20

    def test_full_sky_drops_launch(self):
        sim = _simulator(max_shells=10)
        assert sim.shell_limit == 10 - SHELL_SLOTS_RESERVED
        for _ in range(sim.shell_limit):
            assert sim.launch_shell(0, 0, 0.0) is not None
        assert sim.launch_shell(0, 0, 0.0) is None
        assert sim.active_count == sim.shell_limit

    def test_photo_shells_never_chain(self, sim):
        sim.cfg.max_shells = 1000
        shells = [sim.launch_shell(0, 0, 0.0, is_photo_linked=True) for _ in range(200)]
        assert not any(s.has_chained_explosion for s in shells)

    def test_some_regular_shells_chain(self, sim):
        sim.cfg.max_shells = 1000
        shells = [sim.launch_shell(0, 0, 0.0) for _ in range(200)]
        chained = sum(s.has_chained_explosion for s in shells)
        assert 30 < chained < 120

    def test_empty_palette_stored_as_none(self, sim):
        shell = sim.launch_shell(0, 0, 0.0, palette=[])
        assert shell.palette is None

    def test_pattern_picked_at_launch(self, sim):
        shells = [sim.launch_shell(0, 0, 0.0) for _ in range(20)]
        assert all(s.pattern in PATTERNS for s in shells)

    def test_given_pattern_normalized(self, sim):
        assert sim.launch_shell(0, 0, 0.0, pattern="willow").pattern == "WILLOW"
        assert sim.launch_shell(0, 0, 0.0, pattern="DRAGON").pattern == "PEONY"


class TestFlight:
    def test_integration_step(self, sim):
        shell = sim.launch_shell(0, 0, time=0.0)
        dt = 0.01
        sim.update(dt, 0.0)
        moved = sim.shells[0]
        vy = shell.velocity[1] + sim.cfg.gravity[1] * dt * SHELL_GRAVITY_FACTOR
        assert moved.velocity[1] == pytest.approx(vy)
        assert moved.position[1] == pytest.approx(shell.position[1] + vy * dt)
        assert moved.position[0] == pytest.approx(shell.velocity[0] * dt)
        assert moved.state is ShellState.FLYING

    def test_large_dt_clamped(self):
        a = _simulator(seed=3)
        b = _simulator(seed=3)
        a.launch_shell(0, 0, time=0.0)
        b.launch_shell(0, 0, time=0.0)
        a.update(5.0, 0.1)
        b.update(MAX_DT, 0.1)
        assert a.shells[0].position == b.shells[0].position

    def test_clamp_dt(self):
        assert clamp_dt(1.0) == MAX_DT
        assert clamp_dt(-0.5) == 0.0
        assert clamp_dt(0.01) == 0.01


class TestDetonation:
    def test_detonates_on_time(self, sim):
        callback = MagicMock()
        sim.on_explode = callback
        shell = sim.launch_shell(0, 0, time=0.0)
        sim.update(0.016, shell.explode_at)

        assert sim.active_count == 0
        assert sim.engine.particles.cursor > 0
        callback.assert_called_once()
        exploded, center, time = callback.call_args.args
        assert exploded.id == shell.id
        assert exploded.state is ShellState.EXPLODING
        assert time == shell.explode_at
        assert center.shape == (3,)

    def test_keeps_flying_before_fuse(self, sim):
        shell = sim.launch_shell(0, 0, time=0.0)
        sim.update(0.016, shell.explode_at - 0.5)
        assert sim.active_count == 1

    def test_ground_hit_detonates_above_floor(self, sim):
        callback = MagicMock()
        sim.on_explode = callback
        shell = sim.launch_shell(0, 0, time=0.0)
        sim.shells[0] = replace(
            shell, position=(1.0, sim.cfg.ground_y - 1.0, 2.0), velocity=(0.0, -5.0, 0.0)
        )
        sim.update(0.016, 0.1)

        assert sim.active_count == 0
        center = callback.call_args.args[1]
        assert center[1] == pytest.approx(sim.cfg.ground_y + DETONATION_FLOOR)

    def test_photo_shell_detonates_stronger(self, sim):
        shell = sim.launch_shell(0, 0, time=0.0, is_photo_linked=True, photo_payload="p1")
        with patch.object(sim.engine, "spawn_explosion", return_value=0) as spawn:
            sim.update(0.016, shell.explode_at)
        kwargs = spawn.call_args.kwargs
        assert kwargs["strength"] == pytest.approx(1.2)
        assert kwargs["is_photo_linked"] is True

    def test_callback_sees_payload(self, sim):
        callback = MagicMock()
        sim.on_explode = callback
        shell = sim.launch_shell(0, 0, time=0.0, is_photo_linked=True, photo_payload="p1")
        sim.update(0.016, shell.explode_at)
        assert callback.call_args.args[0].photo_payload == "p1"

    def test_listener_sees_spawned_pattern(self, sim):
        callback = MagicMock()
        sim.on_explode = callback
        shell = sim.launch_shell(0, 0, time=0.0)
        with patch.object(sim.engine, "spawn_explosion", wraps=sim.engine.spawn_explosion) as spawn:
            sim.update(0.016, shell.explode_at)
        spawned = spawn.call_args_list[0].kwargs["pattern"]
        assert spawned == shell.pattern
        assert callback.call_args.args[0].pattern == spawned

    def test_raising_listener_detonates_once(self, sim):
        callback = MagicMock(side_effect=RuntimeError("listener failed"))
        sim.on_explode = callback
        shell = sim.launch_shell(0, 0, time=0.0)

        with pytest.raises(RuntimeError):
            sim.update(0.016, shell.explode_at)
        cursor = sim.engine.particles.cursor
        sim.update(0.016, shell.explode_at + 0.016)

        callback.assert_called_once()
        assert sim.active_count == 0
        assert sim.engine.particles.cursor == cursor


class TestChainedExplosions:
    def _chained(self, sim, time=0.0):
        shell = sim.launch_shell(0, 0, time=time)
        sim.shells[0] = replace(shell, has_chained_explosion=True, chained_delay=0.3)
        return sim.shells[0]

    def test_chain_enqueued(self, sim):
        shell = self._chained(sim)
        sim.update(0.016, shell.explode_at)

        assert sim.pending_count == 1
        ev = sim.pending[0]
        assert ev.time == pytest.approx(shell.explode_at + 0.3)
        assert ev.strength == pytest.approx(CHAIN_STRENGTH)
        assert ev.pattern in CHAINED_PATTERNS
        np.testing.assert_allclose(ev.palette, sim.chained_palette)

    def test_chain_center_lifted(self, sim):
        callback = MagicMock()
        sim.on_explode = callback
        shell = self._chained(sim)
        sim.update(0.016, shell.explode_at)
        center = callback.call_args.args[1]
        assert sim.pending[0].center[1] == pytest.approx(center[1] + CHAIN_LIFT)

    def test_chain_fires_when_due(self, sim):
        shell = self._chained(sim)
        sim.update(0.016, shell.explode_at)
        due = sim.pending[0].time

        with patch.object(sim.engine, "spawn_explosion", return_value=0) as spawn:
            sim.update(0.016, due - 0.01)
            assert spawn.call_count == 0
            sim.update(0.016, due)
            assert spawn.call_count == 1
        assert spawn.call_args.kwargs["time"] == pytest.approx(due)
        assert sim.pending_count == 0

    def test_pending_resolved_before_shells(self, sim):
        shell = sim.launch_shell(0, 0, time=0.0)
        sim.shells[0] = replace(shell, has_chained_explosion=False)
        sim.pending.append(PendingExplosion(
            center=(0.0, 5.0, 0.0), palette=None, time=shell.explode_at,
            pattern="PEONY", strength=CHAIN_STRENGTH,
        ))
        with patch.object(sim.engine, "spawn_explosion", return_value=0) as spawn:
            sim.update(0.016, shell.explode_at)
        strengths = [c.kwargs["strength"] for c in spawn.call_args_list]
        assert strengths == pytest.approx([CHAIN_STRENGTH, 1.0])


class TestDisplay:
    def test_positions_and_colors(self, sim):
        assert sim.shell_positions().shape == (0, 3)
        sim.launch_shell(1, 1, 0.0)
        sim.launch_shell(2, 2, 0.0, palette=[[0.1, 0.2, 0.3]])
        assert sim.shell_positions().shape == (2, 3)
        colors = sim.shell_colors()
        assert colors.shape == (2, 3)
        np.testing.assert_allclose(colors[1], [0.1, 0.2, 0.3], atol=1e-6)

    def test_colors_do_not_disturb_simulation(self):
        a = _simulator(seed=11)
        b = _simulator(seed=11)
        a.launch_shell(0, 0, 0.0)
        b.launch_shell(0, 0, 0.0)
        for _ in range(5):
            a.shell_colors()
        assert a.launch_shell(0, 0, 0.0) == b.launch_shell(0, 0, 0.0)
