"""
Section analyzer: partitions a track into intro/verse/chorus/drop/
breakdown/outro regions from the energy envelope and the bar grid.

Detection is based on:
1. Energy level thresholds
2. Energy change gradients (build-ups, drops)
3. Position in track (intro near the start, outro near the end)
"""

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from beatsync.core.analyzer_base import BaseAnalyzer
from beatsync.core.energy import ENVELOPE_RATE, average_energy, iter_energy_changes
from beatsync.core.models import MusicSection, SectionType

# Bars are sorted; stop scanning once a bar is this far past the change time.
_SNAP_LOOKAHEAD: float = 2.0
_EMPTY_ENVELOPE_ENERGY: float = 0.5


@dataclass(frozen=True)
class SectionRules:
    """Thresholds for boundary placement and section classification."""

    change_threshold: float = 0.15
    min_section_duration: float = 4.0
    edge_window: float = 15.0
    high_energy: float = 0.7
    medium_energy: float = 0.4
    drop_delta: float = 0.25
    breakdown_delta: float = -0.2
    fallback_bars: int = 8
    bars_per_phrase: int = 4
    phrase_min_spacing: float = 2.0


DEFAULT_RULES = SectionRules()


def snap_to_nearest_bar(time: float, bar_times: Sequence[float]) -> float:
    """Nearest bar timestamp to ``time``; ``time`` itself when there are no bars."""
    if len(bar_times) == 0:
        return time

    nearest = bar_times[0]
    min_diff = abs(time - nearest)
    for bar_time in bar_times:
        diff = abs(time - bar_time)
        if diff < min_diff:
            min_diff = diff
            nearest = bar_time
        if bar_time > time + _SNAP_LOOKAHEAD:
            break
    return nearest


def classify_section(
    energy: float,
    start_time: float,
    end_time: float,
    duration: float,
    energy_change: float,
    rules: SectionRules = DEFAULT_RULES,
) -> SectionType:
    """
    Classify one interval; the first matching rule wins.

    An interval spanning the whole track is not positional, so the intro and
    outro rules only apply to intervals that leave part of the track uncovered.
    """
    whole_track = start_time <= 0.0 and end_time >= duration

    if not whole_track:
        if start_time < rules.edge_window and energy < rules.high_energy:
            return SectionType.INTRO
        if end_time > duration - rules.edge_window and energy < rules.high_energy:
            return SectionType.OUTRO

    if energy >= rules.high_energy:
        if energy_change > rules.drop_delta:
            return SectionType.DROP
        return SectionType.CHORUS

    if energy >= rules.medium_energy:
        return SectionType.VERSE

    if energy_change < rules.breakdown_delta:
        return SectionType.BREAKDOWN

    return SectionType.UNKNOWN


def merge_sections(sections: Sequence[MusicSection]) -> List[MusicSection]:
    """
    Coalesce consecutive sections of the same type.

    The merged energy is a running two-term average, (current + next) / 2,
    so later intervals weigh more than a duration-weighted mean would give
    them.
    """
    if len(sections) <= 1:
        return list(sections)

    merged: List[MusicSection] = []
    current = sections[0]
    for section in sections[1:]:
        if section.type == current.type:
            current = MusicSection(
                type=current.type,
                start_time=current.start_time,
                end_time=section.end_time,
                energy=(current.energy + section.energy) / 2,
            )
        else:
            merged.append(current)
            current = section
    merged.append(current)
    return merged


def detect_phrase_boundaries(
    bar_times: Sequence[float],
    sections: Sequence[MusicSection],
    rules: SectionRules = DEFAULT_RULES,
) -> List[float]:
    """
    Phrase boundaries: every section start, plus every ``bars_per_phrase``-th
    bar that is not within ``phrase_min_spacing`` of a boundary already kept.
    """
    phrases: List[float] = []
    for section in sections:
        if section.start_time not in phrases:
            phrases.append(section.start_time)

    for i in range(0, len(bar_times), rules.bars_per_phrase):
        bar_time = bar_times[i]
        if all(abs(p - bar_time) >= rules.phrase_min_spacing for p in phrases):
            phrases.append(bar_time)

    return sorted(phrases)


class SectionAnalyzer(BaseAnalyzer[List[MusicSection]]):
    """
    Segments and classifies a track.

    Stateless apart from its rules; identical inputs give identical output.
    """

    def __init__(self, rules: SectionRules = DEFAULT_RULES, rate: int = ENVELOPE_RATE):
        super().__init__("sections", "1.0.0")
        self.rules = rules
        self.rate = rate

    def _analyze_impl(
        self,
        envelope: np.ndarray,
        bar_times: Sequence[float],
        duration: float,
    ) -> List[MusicSection]:
        if len(envelope) == 0:
            return [
                MusicSection(
                    type=SectionType.UNKNOWN,
                    start_time=0.0,
                    end_time=duration,
                    energy=_EMPTY_ENVELOPE_ENERGY,
                )
            ]

        boundaries = self.find_boundaries(envelope, bar_times, duration)

        sections: List[MusicSection] = []
        for i, (start, end) in enumerate(zip(boundaries, boundaries[1:])):
            energy = average_energy(envelope, start, end, self.rate)
            previous = (
                average_energy(envelope, boundaries[i - 1], start, self.rate)
                if i > 0
                else energy
            )
            sections.append(
                MusicSection(
                    type=classify_section(
                        energy, start, end, duration, energy - previous, self.rules
                    ),
                    start_time=start,
                    end_time=end,
                    energy=energy,
                )
            )

        merged = merge_sections(sections)
        self.logger.debug(
            f"{len(boundaries) - 1} intervals merged into {len(merged)} sections"
        )
        return merged

    def find_boundaries(
        self,
        envelope: np.ndarray,
        bar_times: Sequence[float],
        duration: float,
    ) -> List[float]:
        """Section boundaries from 0 to ``duration`` inclusive, ascending."""
        min_gap = self.rules.min_section_duration
        boundaries: List[float] = [0.0]

        for change in iter_energy_changes(envelope, self.rules.change_threshold, self.rate):
            snapped = float(snap_to_nearest_bar(change.time, bar_times))
            if snapped - boundaries[-1] >= min_gap:
                boundaries.append(snapped)

        if duration - boundaries[-1] >= min_gap or len(boundaries) == 1:
            boundaries.append(duration)
        else:
            # fold a too-short tail into the last section
            boundaries[-1] = duration

        if len(boundaries) == 2 and len(bar_times) > 0:
            start, end = boundaries
            for i in range(self.rules.fallback_bars, len(bar_times), self.rules.fallback_bars):
                bar_time = float(bar_times[i])
                if start + min_gap < bar_time < end - min_gap:
                    boundaries.append(bar_time)
            boundaries.sort()

        return boundaries

