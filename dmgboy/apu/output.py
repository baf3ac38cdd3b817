"""
AudioOutput - Salida de audio del host con pygame.mixer

Implementa el AudioSink: cada buffer estéreo entrelazado de floats en [-1, 1]
se convierte a int16 con forma (frames, 2) y se encola en un canal del mixer.
Si la cola del canal ya está ocupada el buffer se descarta, de modo que el
audio nunca retrasa la emulación.
"""

from __future__ import annotations

import logging

import numpy as np
import pygame

from ..config import AUDIO_CHANNELS, AUDIO_FREQ_HZ, AUDIO_SAMPLES

logger = logging.getLogger(__name__)

INT16_MAX = 32767


def to_int16_stereo(samples: np.ndarray) -> np.ndarray:
    """Convierte [L, R, L, R, ...] float a un array int16 (frames, 2) contiguo."""
    clipped = np.clip(samples, -1.0, 1.0)
    pcm = (clipped * INT16_MAX).astype(np.int16)
    return np.ascontiguousarray(pcm.reshape(-1, AUDIO_CHANNELS))


class AudioOutput:
    """
    Dispositivo de audio Pygame.
    """

    def __init__(self, audio_freq: int = AUDIO_FREQ_HZ, audio_samples: int = AUDIO_SAMPLES) -> None:
        pygame.mixer.init(
            frequency=audio_freq,
            size=-16,
            channels=AUDIO_CHANNELS,
            buffer=audio_samples,
        )
        self.channel = pygame.mixer.Channel(0)
        self.dropped = 0
        logger.info(f"Audio inicializado: {audio_freq} Hz, buffer={audio_samples}")

    def enqueue_audio(self, samples: np.ndarray) -> None:
        """AudioSink: encola un buffer o lo descarta si la cola está llena."""
        sound = pygame.sndarray.make_sound(to_int16_stereo(samples))
        if not self.channel.get_busy():
            self.channel.play(sound)
        elif self.channel.get_queue() is None:
            self.channel.queue(sound)
        else:
            self.dropped += 1

    def close(self) -> None:
        pygame.mixer.quit()
        if self.dropped:
            logger.info(f"Audio cerrado ({self.dropped} buffers descartados)")
        else:
            logger.info("Audio cerrado")
