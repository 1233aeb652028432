import pytest

from fractran_engine.animation import AnimationPhase
from fractran_engine.config import EngineConfig
from fractran_engine.engine import FractranEngine, LoadOptions
from fractran_engine.errors import ParseError, RegisterError
from fractran_engine.events import EventKind, SimulationEvent, default_registry
from fractran_engine.presets import PRIMEGAME
from fractran_engine.program import parse


def snapshot(engine):
    return [(s.step, dict(s.registers), s.last_rule_index, s.halted) for s in engine.history]


def test_scenario_a_runs_to_halt(make_engine):
    engine = make_engine(["3/2"], {2: 3, 3: 2})
    assert engine.total_steps == 3

    final = engine.run(100)
    assert final.halted
    assert final.step == 3
    assert dict(final.registers) == {3: 5}
    assert engine.value == 243
    assert engine.value_text == "3⁵"
    # root, three applications, then the halted marker at the same step
    assert len(engine.history) == 5
    assert [(e.step, e.kind) for e in engine.events] == [
        (0, EventKind.INFO),
        (3, EventKind.HALTED),
    ]


def test_scenario_b_empties_the_registers(make_engine):
    engine = make_engine(["1/15"], 225)
    final = engine.run(10)
    assert final.halted and final.step == 2
    assert dict(final.registers) == {}
    assert engine.value == 1


def test_step_on_halted_state_is_a_noop(make_engine):
    engine = make_engine(["3/2"], {3: 1})
    halted = engine.step()
    assert halted.halted and halted.step == 0
    size = len(engine.history)
    events = len(engine.events)
    assert engine.step() is halted
    assert len(engine.history) == size
    assert len(engine.events) == events


def test_bad_load_leaves_previous_program_in_place(make_engine):
    engine = make_engine(["3/2"], {2: 3, 3: 2})
    engine.run(2)
    before = snapshot(engine)
    program = engine.program

    with pytest.raises(ParseError):
        engine.load(["3/2", "3/x"], {2: 1})
    with pytest.raises(RegisterError):
        engine.load(["3/2"], {4: 1})
    with pytest.raises(RegisterError):
        engine.load(["3/2"], {2: 1}, LoadOptions(editable_primes=[6]))

    assert engine.program is program
    assert snapshot(engine) == before
    assert engine.state.step == 2


def test_load_replaces_everything(make_engine):
    engine = make_engine(["3/2"], {2: 3})
    engine.run(10)
    engine.load(["5/3"], {3: 2}, LoadOptions(editable_primes=[3]))
    assert engine.state.step == 0
    assert dict(engine.state.registers) == {3: 2}
    assert len(engine.history) == 1
    assert [e.message for e in engine.events] == ["Loaded."]
    assert engine.editable_primes == (3,)
    assert engine.total_steps == 2


def test_engine_accepts_parsed_rules(make_engine):
    engine = make_engine(parse(["3/2"]), {2: 2})
    assert dict(engine.run(10).registers) == {3: 2}


def test_scrub_then_step_branches(make_engine):
    engine = make_engine(["3/2"], {2: 3, 3: 2})
    engine.run(3)
    assert len(engine.history) == 4

    assert engine.scrub(1).step == 1
    assert engine.cursor == 1
    engine.step()
    assert len(engine.history) == 3
    assert engine.state.step == 2

    assert engine.scrub(-5).step == 0
    assert engine.scrub(99).step == 2


def test_reset_returns_to_root_after_eviction(make_engine):
    engine = make_engine(["2/1"], history_capacity=3)
    engine.run(10)
    assert [s.step for s in engine.history] == [8, 9, 10]
    assert engine.history.evicted == 8

    engine.reset()
    assert engine.state.step == 0
    assert dict(engine.state.registers) == {}
    assert len(engine.history) == 1
    assert [e.message for e in engine.events] == ["Reset."]


def test_forecast_unknown_for_runaway_program(make_engine):
    engine = make_engine(["2/1"])
    assert engine.total_steps is None
    engine.run(7)
    assert dict(engine.state.registers) == {2: 7}


def test_edit_register(make_engine):
    engine = make_engine(["3/2"], {2: 4}, editable=[2])
    assert engine.total_steps == 4

    assert engine.edit_register(2, 1) is True
    assert dict(engine.state.registers) == {2: 5}
    assert engine.history.root is engine.state
    assert engine.total_steps == 5

    assert engine.edit_register(3, 1) is False
    assert engine.edit_register(2, -10) is True
    assert dict(engine.state.registers) == {}
    assert engine.total_steps == 0


def test_edit_register_only_at_step_zero(make_engine):
    engine = make_engine(["3/2"], {2: 4}, editable=[2])
    engine.step()
    assert engine.edit_register(2, 1) is False
    assert dict(engine.history.root.registers) == {2: 4}

    engine.scrub(0)
    assert engine.edit_register(2, 1) is True
    assert len(engine.history) == 1


def test_animated_instant_and_manual_runs_agree(scheduler):
    def build(speed):
        return FractranEngine(
            ["5/6", "3/2", "1/3"],
            {2: 2, 3: 1},
            config=EngineConfig(initial_speed=speed),
            scheduler=scheduler,
        )

    manual = build(10)
    manual.run(100)

    animated = build(10)
    assert animated.set_playing(True)
    scheduler.run_all()

    instant = build(100)
    assert instant.set_playing(True)
    scheduler.run_all()

    assert manual.state.halted
    assert snapshot(animated) == snapshot(manual)
    assert snapshot(instant) == snapshot(manual)
    assert [e.kind for e in animated.events] == [e.kind for e in manual.events]
    assert not animated.playing and not instant.playing
    assert animated.phase is AnimationPhase.IDLE


def test_manual_commands_stop_playback(make_engine, scheduler):
    engine = make_engine(["3/2"], {2: 3, 3: 2})
    for command in (engine.step, lambda: engine.scrub(0), engine.reset, engine.stop):
        assert engine.set_playing(True)
        scheduler.run_next()
        assert engine.phase is AnimationPhase.SCANNING
        command()
        assert not engine.playing
        assert engine.phase is AnimationPhase.IDLE
        assert scheduler.pending == 0


def test_load_cancels_pending_phase(make_engine, scheduler):
    engine = make_engine(["3/2"], {2: 3})
    engine.set_playing(True)
    scheduler.run_next()
    engine.load(["5/3"], {3: 1})
    assert not engine.playing
    assert scheduler.run_all() == 0
    assert engine.state.step == 0


def test_cannot_play_a_halted_state(make_engine, scheduler):
    engine = make_engine(["3/2"], {3: 1})
    engine.step()
    assert engine.set_playing(False) is False
    assert engine.set_playing(True) is False
    assert scheduler.pending == 0


def test_active_rule_follows_the_phases(make_engine, scheduler):
    engine = make_engine(["5/7", "3/2"], {2: 1})
    rules = engine.program
    engine.set_playing(True)
    assert engine.active_rule is None

    scheduler.run_next()
    assert engine.phase is AnimationPhase.SCANNING
    assert engine.active_rule is rules[0]
    scheduler.run_next()
    assert engine.active_rule is rules[1]
    scheduler.run_next()
    assert engine.phase is AnimationPhase.SELECTING
    assert engine.active_rule_index == 1
    assert engine.active_rule is rules[1]

    scheduler.run_next()
    scheduler.run_next()
    assert engine.phase is AnimationPhase.PRODUCING
    assert engine.state.step == 0
    scheduler.run_next()
    assert engine.phase is AnimationPhase.IDLE
    assert engine.state.step == 1
    assert engine.active_rule is None


def test_speed_is_clamped(make_engine):
    engine = make_engine(["3/2"])
    engine.set_speed(500)
    assert engine.speed == 100
    engine.set_speed(0)
    assert engine.speed == 1


def test_used_primes(make_engine):
    engine = make_engine(["17/91"], {2: 1})
    assert engine.used_primes == [2, 3, 5, 7, 11, 13, 17]
    assert make_engine([], None).used_primes == []
    assert make_engine(["1/1"], None, editable=[3]).used_primes == [2, 3]


def test_primegame_finds_primes(make_engine):
    engine = make_engine(list(PRIMEGAME), {2: 1}, events=[EventKind.POWER_OF_TWO], forecast_limit=10)
    engine.run(1000)
    found = [e for e in engine.events if e.kind is EventKind.POWER_OF_TWO]
    assert [e.data for e in found[:4]] == [2, 3, 5, 7]
    assert [e.step for e in found[:4]] == [19, 69, 280, 707]


def test_custom_detector_kind(scheduler):
    registry = default_registry()

    @registry.register("odd")
    def detect_odd(prev, nxt):
        if 2 not in nxt.registers and 2 in prev.registers:
            return SimulationEvent(nxt.step, "odd", "became odd")
        return None

    seen = []
    engine = FractranEngine(
        ["3/2"],
        {2: 2},
        LoadOptions(enabled_event_kinds=["odd", EventKind.HALTED]),
        scheduler=scheduler,
        registry=registry,
        on_event=seen.append,
    )
    engine.run(10)
    assert [(e.step, e.kind) for e in seen] == [(2, "odd"), (2, EventKind.HALTED)]
