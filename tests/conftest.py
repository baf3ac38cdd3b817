"""
Configuración global de pytest para dmgboy

- Configura pygame en modo headless (sin ventanas ni dispositivo de audio)
- Añade la raíz del proyecto al sys.path
- Fixtures para construir ROMs sintéticas y emuladores conectados
"""

import os
import sys
from pathlib import Path

import pytest

# Agregar el directorio raíz al sys.path para importar módulos
project_root = Path(__file__).parent.parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Configurar pygame en modo headless para que los tests no abran ventanas
os.environ["SDL_VIDEODRIVER"] = "dummy"
os.environ["SDL_AUDIODRIVER"] = "dummy"
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

os.environ["DMGBOY_HEADLESS"] = "1"

from dmgboy.emulator import Emulator  # noqa: E402
from dmgboy.host import RecordingAudioSink, RecordingFrameSink  # noqa: E402
from tests.helpers_rom import IDLE_LOOP, build_rom  # noqa: E402


@pytest.fixture
def make_rom():
    """Fábrica de ROMs sintéticas (ver helpers_rom.build_rom)."""
    return build_rom


@pytest.fixture
def frame_sink() -> RecordingFrameSink:
    return RecordingFrameSink()


@pytest.fixture
def audio_sink() -> RecordingAudioSink:
    return RecordingAudioSink()


@pytest.fixture
def emulator(frame_sink, audio_sink) -> Emulator:
    """Emulador ROM-only que ejecuta un bucle infinito, con sinks que graban."""
    rom = build_rom(program=IDLE_LOOP)
    return Emulator(
        rom,
        frame_sink=frame_sink,
        audio_sink=audio_sink,
        audio_freq=48_000,
        audio_samples=256,
    )
