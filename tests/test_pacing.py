import random

import pytest

from api.features.chat.pacing import DEFAULT_BASE_MS, Pacer, Speed, build_pacer
from core.settings import RelaySettings


class FixedRandom:
    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


def test_speed_parse_defaults_to_normal():
    assert Speed.parse("fast") is Speed.FAST
    assert Speed.parse(" SLOW ") is Speed.SLOW
    assert Speed.parse("turbo") is Speed.NORMAL
    assert Speed.parse(None) is Speed.NORMAL
    assert Speed.parse("") is Speed.NORMAL


def test_delay_bounds():
    assert Pacer(rng=FixedRandom(0.0)).delay_ms(Speed.FAST) == 20
    assert Pacer(rng=FixedRandom(0.0)).delay_ms(Speed.SLOW) == 200
    assert Pacer(rng=FixedRandom(0.5)).delay_ms(Speed.NORMAL) == pytest.approx(120)

    pacer = Pacer(rng=random.Random(7))
    for _ in range(500):
        assert 20 <= pacer.delay_ms(Speed.FAST) < 28
        assert 100 <= pacer.delay_ms(Speed.NORMAL) < 140
        assert 200 <= pacer.delay_ms(Speed.SLOW) < 280


async def test_pause_sleeps_in_seconds(sleeps):
    pacer = Pacer(sleep=sleeps, rng=FixedRandom(0.25))
    delay = await pacer.pause(Speed.SLOW)
    assert delay == pytest.approx(220)
    assert sleeps.calls == [pytest.approx(0.22)]


def test_build_pacer_uses_relay_settings():
    settings = RelaySettings(
        PACING_FAST_MS=1, PACING_NORMAL_MS=2, PACING_SLOW_MS=3, PACING_JITTER_RATIO=0.0
    )
    pacer = build_pacer(settings)
    assert pacer.delay_ms(Speed.FAST) == 1
    assert pacer.delay_ms(Speed.SLOW) == 3
    assert DEFAULT_BASE_MS[Speed.NORMAL] == 100
