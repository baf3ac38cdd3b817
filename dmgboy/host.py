"""
Interfaces con el host

El núcleo entrega su salida a dos sinks que implementa el host:
- FrameSink.draw_line(ly, scanline): una línea de 160 índices de color (0-3,
  0 = más claro). El buffer solo es válido durante la llamada; si el host
  quiere conservarlo debe copiarlo.
- AudioSink.enqueue_audio(samples): buffer estéreo entrelazado [L, R, L, R, ...]
  de floats en [-1, 1]. La propiedad del buffer pasa al host.

Este módulo también trae implementaciones sencillas para ejecutar sin
ventana ni audio (modo headless y tests).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from .config import LCD_HEIGHT, LCD_WIDTH

if TYPE_CHECKING:
    import numpy as np

logger = logging.getLogger(__name__)


class FrameSink(Protocol):
    def draw_line(self, ly: int, scanline: bytes | bytearray) -> None:
        ...


class AudioSink(Protocol):
    def enqueue_audio(self, samples: np.ndarray) -> None:
        ...


class NullFrameSink:
    """Descarta las líneas."""

    def draw_line(self, ly: int, scanline: bytes | bytearray) -> None:
        pass


class NullAudioSink:
    """Descarta los buffers de audio."""

    def enqueue_audio(self, samples: np.ndarray) -> None:
        pass


class RecordingFrameSink:
    """
    Guarda una copia de cada línea recibida.

    `lines` conserva el orden de llegada como tuplas (ly, bytes) y `frame`
    guarda la última versión de cada una de las 144 líneas.
    """

    def __init__(self, keep_history: bool = True) -> None:
        self.keep_history = keep_history
        self.lines: list[tuple[int, bytes]] = []
        self.frame: list[bytes] = [bytes(LCD_WIDTH) for _ in range(LCD_HEIGHT)]

    def draw_line(self, ly: int, scanline: bytes | bytearray) -> None:
        data = bytes(scanline)
        if self.keep_history:
            self.lines.append((ly, data))
        self.frame[ly] = data

    def clear(self) -> None:
        self.lines.clear()


class RecordingAudioSink:
    """Guarda los buffers de audio recibidos."""

    def __init__(self) -> None:
        self.buffers: list[np.ndarray] = []

    def enqueue_audio(self, samples: np.ndarray) -> None:
        self.buffers.append(samples)
