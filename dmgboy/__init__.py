"""
dmgboy - Emulador de Game Boy (DMG) sincronizado por ciclos

Núcleo: CPU SM83, PPU, APU, MMU con MBC1, Timer y Joypad. El host recibe las
líneas de vídeo por un FrameSink y los buffers de audio por un AudioSink.
"""

from .emulator import Emulator
from .errors import CartridgeUnsupported, EmulatorError, HostSinkFailure, IllegalInstruction

__version__ = "0.1.0"

__all__ = [
    "CartridgeUnsupported",
    "Emulator",
    "EmulatorError",
    "HostSinkFailure",
    "IllegalInstruction",
    "__version__",
]
