import pytest

pygame = pytest.importorskip("pygame")

from fractran_engine.animation import AnimationPhase
from fractran_engine.viewer import BoardViewer


@pytest.fixture
def viewer(monkeypatch, make_engine):
    monkeypatch.setenv("SDL_VIDEODRIVER", "dummy")
    engine = make_engine(["3/2", "5/3"], {2: 1, 3: 1}, editable=[2, 3])
    v = BoardViewer(engine, cell_size=8)
    yield v
    v.close()


def test_draw_frame_in_every_phase(viewer, scheduler):
    viewer.draw_frame()
    viewer.engine.set_playing(True)
    seen = set()
    while viewer.engine.playing:
        scheduler.run_next()
        seen.add(viewer.engine.phase)
        viewer.draw_frame()
    assert AnimationPhase.CONSUMING in seen
    assert viewer.engine.state.halted


def test_keys_drive_the_engine(viewer):
    eng = viewer.engine
    viewer.handle_key(pygame.K_EQUALS)
    assert dict(eng.state.registers) == {2: 2, 3: 1}
    viewer.handle_key(pygame.K_TAB)
    viewer.handle_key(pygame.K_MINUS)
    assert dict(eng.state.registers) == {2: 2}

    viewer.handle_key(pygame.K_RIGHT)
    assert eng.state.step == 1
    viewer.handle_key(pygame.K_LEFT)
    assert eng.cursor == 0

    viewer.handle_key(pygame.K_SPACE)
    assert eng.playing
    viewer.handle_key(pygame.K_SPACE)
    assert not eng.playing

    viewer.handle_key(pygame.K_UP)
    assert eng.speed == 20
    viewer.handle_key(pygame.K_ESCAPE)
    assert viewer.closed
