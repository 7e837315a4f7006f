"""Synthesized feedback cues for the matching puzzle.

Sounds are rendered to 16-bit mono PCM at startup and played through
``pygame.mixer``. If the mixer cannot be initialised (no audio device, dummy
driver quirks) every cue silently does nothing.
"""

from __future__ import annotations

import logging
import math
from array import array

import pygame

from .game_core import clamp01

logger = logging.getLogger(__name__)

# (frequency_hz, duration_s) for the level-up arpeggio: C5 E5 G5 C6.
_SUCCESS_NOTES: tuple[tuple[float, float], ...] = (
    (523.25, 0.10),
    (659.25, 0.10),
    (783.99, 0.10),
    (1046.50, 0.40),
)


class MondrianAudio:
    _sample_rate = 22050
    _amp = 32767

    def __init__(self, *, volume: float = 1.0) -> None:
        self._available = False
        self._volume = clamp01(volume)
        self._click: pygame.mixer.Sound | None = None
        self._success: pygame.mixer.Sound | None = None
        self._fail: pygame.mixer.Sound | None = None
        self._channel: pygame.mixer.Channel | None = None

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            self._click = self._to_sound(self.render_click_pcm())
            self._success = self._to_sound(self.render_success_pcm())
            self._fail = self._to_sound(self.render_fail_pcm())
            self._channel = pygame.mixer.Channel(0)
            self._available = True
        except pygame.error as exc:
            logger.warning("audio unavailable, cues disabled: %s", exc)
            self._available = False

    def play_click(self) -> None:
        self._play(self._click)

    def play_success(self) -> None:
        self._play(self._success)

    def play_fail(self) -> None:
        self._play(self._fail)

    def stop(self) -> None:
        if self._available and self._channel is not None:
            self._channel.stop()

    def _play(self, sound: pygame.mixer.Sound | None) -> None:
        if not self._available or sound is None or self._channel is None:
            return
        self._channel.play(sound)

    def _to_sound(self, pcm: array[int]) -> pygame.mixer.Sound:
        sound = pygame.mixer.Sound(buffer=pcm.tobytes())
        sound.set_volume(self._volume)
        return sound

    def render_click_pcm(self) -> array[int]:
        # Sine chirp 800 -> 300 Hz, exponential decay, 100 ms.
        duration_s = 0.10
        n = self._sample_count(duration_s)
        out = array("h")
        phase = 0.0
        for idx in range(n):
            t = idx / float(n)
            freq = 800.0 * (300.0 / 800.0) ** t
            gain = 0.1 * (0.01 / 0.1) ** t
            phase += 2.0 * math.pi * freq / self._sample_rate
            out.append(self._quantize(math.sin(phase) * gain))
        return out

    def render_success_pcm(self) -> array[int]:
        out = array("h")
        for freq, duration_s in _SUCCESS_NOTES:
            n = self._sample_count(duration_s)
            release_n = min(n, self._sample_count(0.05))
            for idx in range(n):
                tail = n - idx
                gain = 0.1 if tail > release_n else 0.1 * tail / float(release_n)
                cycle = (freq * idx / self._sample_rate) % 1.0
                square = 1.0 if cycle < 0.5 else -1.0
                out.append(self._quantize(square * gain))
        return out

    def render_fail_pcm(self) -> array[int]:
        # Sawtooth 150 -> 100 Hz, exponential decay, 300 ms.
        duration_s = 0.30
        n = self._sample_count(duration_s)
        out = array("h")
        cycle = 0.0
        for idx in range(n):
            t = idx / float(n)
            freq = 150.0 + (100.0 - 150.0) * t
            gain = 0.2 * (0.01 / 0.2) ** t
            cycle = (cycle + freq / self._sample_rate) % 1.0
            out.append(self._quantize((2.0 * cycle - 1.0) * gain))
        return out

    def _sample_count(self, duration_s: float) -> int:
        return max(1, int(self._sample_rate * duration_s))

    def _quantize(self, sample: float) -> int:
        return int(max(-1.0, min(1.0, sample)) * self._amp)
