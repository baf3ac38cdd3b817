"""
APU (Audio Processing Unit) - Unidad de Procesamiento de Audio

- APU: registros NR10-NR52, mezcla estéreo y buffers para el host
- channels: canales cuadrados, de onda y de ruido
- AudioOutput: salida pygame.mixer (se importa desde `dmgboy.apu.output`)
"""

from .apu import APU
from .channels import Envelope, NoiseChannel, SquareChannel, Sweep, WaveChannel

__all__ = ["APU", "Envelope", "NoiseChannel", "SquareChannel", "Sweep", "WaveChannel"]
