import pytest

from fractran_engine.config import EngineConfig
from fractran_engine.engine import FractranEngine, LoadOptions
from fractran_engine.scheduler import ManualScheduler


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_engine(scheduler):
    def _make(program, registers=None, *, editable=(), events=None, **config):
        options = LoadOptions(editable_primes=editable)
        if events is not None:
            options.enabled_event_kinds = events
        return FractranEngine(
            program,
            registers,
            options,
            config=EngineConfig(**config),
            scheduler=scheduler,
        )

    return _make
