"""
beatsync - Music Structure Analysis

Detects song sections, drum hits, downbeats and phrase boundaries in a
mono waveform, on top of a beat grid from a librosa beat tracker.
"""

__version__ = "1.0.0"
__author__ = "Audio Analysis Team"
