"""Shared fixtures for structural analysis tests."""

from pathlib import Path

import numpy as np
import pytest

from beatsync.core.models import (
    AnalysisResult,
    BeatGrid,
    DrumPattern,
    MusicSection,
    SectionType,
    Waveform,
)

SAMPLE_RATE = 44100


# ---------------------------------------------------------------------------
# Signal builders
# ---------------------------------------------------------------------------


def make_click_track(
    duration: float = 8.0,
    sample_rate: int = SAMPLE_RATE,
    first_hit: float = 1.0,
    interval: float = 0.5,
    frequency: float = 60.0,
    hit_length: float = 0.1,
) -> np.ndarray:
    """Silence with decaying low-frequency bursts (kick-like hits)."""
    samples = np.zeros(int(duration * sample_rate), dtype=np.float32)
    length = int(hit_length * sample_rate)
    t = np.arange(length) / sample_rate
    burst = (np.sin(2 * np.pi * frequency * t) * np.exp(-t / 0.03)).astype(np.float32)

    for hit in np.arange(first_hit, duration - hit_length, interval):
        start = int(hit * sample_rate)
        samples[start:start + length] += 0.8 * burst
    return samples


def click_times(
    duration: float = 8.0,
    first_hit: float = 1.0,
    interval: float = 0.5,
    hit_length: float = 0.1,
) -> np.ndarray:
    return np.arange(first_hit, duration - hit_length, interval)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_rate():
    return SAMPLE_RATE


@pytest.fixture
def click_track():
    """8 s waveform with a kick-like hit every 0.5 s from 1.0 s."""
    return Waveform(samples=make_click_track(), sample_rate=SAMPLE_RATE)


@pytest.fixture
def click_waveform():
    """Factory building click-track Waveforms with custom timing."""
    def build(**kwargs):
        return Waveform(samples=make_click_track(**kwargs), sample_rate=SAMPLE_RATE)
    return build


@pytest.fixture
def click_hit_times():
    """Start times of the hits in ``click_track``."""
    return click_times()


@pytest.fixture
def click_grid():
    """120 BPM beat grid covering the click track."""
    return BeatGrid.from_beat_times(np.arange(0.0, 8.0, 0.5))


@pytest.fixture
def silent_waveform():
    """5 s of digital silence at 44.1 kHz."""
    return Waveform(samples=np.zeros(5 * SAMPLE_RATE, dtype=np.float32), sample_rate=SAMPLE_RATE)


@pytest.fixture
def sine_frame():
    """2048-sample sine sitting exactly on bin 64."""
    i = np.arange(2048)
    return np.sin(2 * np.pi * 64 * i / 2048)


@pytest.fixture
def constant_envelope():
    """240 s envelope at a constant 0.5."""
    return np.full(2400, 0.5)


@pytest.fixture
def noise_waveform():
    """6 s of seeded noise with a loud middle section."""
    rng = np.random.default_rng(1234)
    samples = rng.normal(0.0, 0.1, 6 * SAMPLE_RATE)
    samples[2 * SAMPLE_RATE:4 * SAMPLE_RATE] *= 5.0
    samples = samples / np.max(np.abs(samples))
    return Waveform(samples=samples.astype(np.float32), sample_rate=SAMPLE_RATE)


def build_result(**overrides):
    """AnalysisResult with plausible values; keyword arguments replace fields."""
    fields = dict(
        beat_times=(0.0, 0.5, 1.0, 1.5),
        bar_times=(0.0,),
        tempo=120.0,
        downbeat_indices=(0,),
        downbeat_times=(0.0,),
        beat_strengths=(1.0, 0.4, 0.6, 0.3),
        drum_pattern=DrumPattern(kick_times=(0.0, 1.0), snare_times=(0.5,), pattern_length=8.0),
        sections=(
            MusicSection(SectionType.INTRO, 0.0, 16.0, 0.3),
            MusicSection(SectionType.DROP, 16.0, 32.0, 0.9),
        ),
        energy_curve=np.linspace(0.0, 1.0, 320),
        phrase_boundaries=(0.0, 8.0, 16.0, 24.0),
        duration=32.0,
        sample_rate=44100,
        source=Path("track.wav"),
    )
    fields.update(overrides)
    return AnalysisResult(**fields)


@pytest.fixture
def make_result():
    """Factory for AnalysisResult objects."""
    return build_result
