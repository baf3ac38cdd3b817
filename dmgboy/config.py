"""
Configuración global de dmgboy

Constantes de la máquina (relojes, resolución, audio) y helpers para leer
flags de entorno `DMGBOY_*`.

Variables de entorno reconocidas:
- DMGBOY_HEADLESS: "1" ejecuta sin ventana ni dispositivo de audio
- DMGBOY_AUDIO_FREQ: frecuencia de muestreo del host (Hz)
- DMGBOY_AUDIO_SAMPLES: frames estéreo por buffer entregado al host
- DMGBOY_SCALE: factor de escala de la ventana
- DMGBOY_TRACE: "1" emite una línea de traza por instrucción (logger dmgboy.trace)

Fuente: Pan Docs - Timing, LCD
"""

from __future__ import annotations

import os

# Reloj maestro: 4.194304 MHz (T-Cycles por segundo)
CPU_FREQ_HZ = 4_194_304

# 154 líneas * 456 T-Cycles = 70224 T-Cycles por frame (~59.73 FPS)
CYCLES_PER_SCANLINE = 456
TOTAL_LINES = 154
FRAME_T_CYCLES = CYCLES_PER_SCANLINE * TOTAL_LINES
TARGET_FPS = CPU_FREQ_HZ / FRAME_T_CYCLES

# Pantalla
LCD_WIDTH = 160
LCD_HEIGHT = 144

# Audio del host
AUDIO_FREQ_HZ = 48_000
AUDIO_SAMPLES = 1024
AUDIO_CHANNELS = 2

# Escala por defecto de la ventana
DEFAULT_SCALE = 3

ENV_PREFIX = "DMGBOY_"


def env_flag(name: str) -> bool:
    """Devuelve True si la variable DMGBOY_<name> vale '1'."""
    return os.environ.get(ENV_PREFIX + name, "0") == "1"


def env_int(name: str, default: int) -> int:
    """
    Lee DMGBOY_<name> como entero.

    Args:
        name: Nombre sin prefijo (ej: "AUDIO_FREQ")
        default: Valor si la variable no existe

    Raises:
        ValueError: Si la variable existe pero no es un entero
    """
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} debe ser un entero, no {raw!r}") from e
