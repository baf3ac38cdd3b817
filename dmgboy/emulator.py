"""
Emulator - Sistema Principal (Placa Base)

La clase Emulator integra todos los componentes de la Game Boy (DMG):
- Cartridge (ROM-only o MBC1)
- MMU, CPU (SM83), PPU, APU, Timer y Joypad

y ejecuta la emulación por frames: cada `run_frame()` consume exactamente
70224 T-Cycles de presupuesto (el sobrante del último paso se arrastra al
frame siguiente), entregando 144 líneas al FrameSink y los buffers de audio
completos al AudioSink.

Al crearse deja el estado que dejaría la Boot ROM DMG:
- AF=0x1180, BC=0x0000, DE=0xFF56, HL=0x0000, SP=0xFFFE, PC=0x0100
- LCDC=0x91, BGP=0xFC
- NR52=0x80, NR50=0x77, NR51=0xF3

Fuente: Pan Docs - Power Up Sequence, Timing
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .apu.apu import APU, NR50, NR51, NR52
from .config import AUDIO_FREQ_HZ, AUDIO_SAMPLES, FRAME_T_CYCLES, env_flag, env_int
from .cpu.core import CPU
from .gpu.ppu import PPU, REG_BGP, REG_LCDC
from .io.joypad import Joypad
from .io.timer import Timer
from .memory.cartridge import Cartridge, load_cartridge
from .memory.mmu import MMU
from .system_clock import SystemClock

if TYPE_CHECKING:
    from .host import AudioSink, FrameSink

logger = logging.getLogger(__name__)

# Registros I/O que deja configurados la Boot ROM DMG
POST_BOOT_IO = (
    (REG_LCDC, 0x91),
    (REG_BGP, 0xFC),
    # NR52 primero: con el APU apagado se ignoran NR50/NR51
    (NR52, 0x80),
    (NR50, 0x77),
    (NR51, 0xF3),
)


class Emulator:
    """
    Sistema completo del emulador dmgboy.
    """

    def __init__(
        self,
        rom: bytes | bytearray | Cartridge,
        frame_sink: FrameSink | None = None,
        audio_sink: AudioSink | None = None,
        audio_freq: int | None = None,
        audio_samples: int | None = None,
        trace: bool | None = None,
        breakpoint_addr: int | None = None,
    ) -> None:
        """
        Args:
            rom: Imagen ROM completa o cartucho ya construido
            frame_sink: Destino de las líneas (por defecto se descartan)
            audio_sink: Destino de los buffers de audio (por defecto se descartan)
            audio_freq: Frecuencia de muestreo (por defecto DMGBOY_AUDIO_FREQ o 48000)
            audio_samples: Frames por buffer (por defecto DMGBOY_AUDIO_SAMPLES o 1024)
            trace: Traza por instrucción en `dmgboy.trace` (por defecto DMGBOY_TRACE)
            breakpoint_addr: Detener `run_frame()` cuando PC llegue a esta dirección

        Raises:
            ValueError: Si la ROM es demasiado pequeña para contener el Header
            CartridgeUnsupported: Si el mapper o los tamaños no están soportados
        """
        if isinstance(rom, Cartridge):
            self._cartridge = rom
        else:
            self._cartridge = load_cartridge(rom)

        if audio_freq is None:
            audio_freq = env_int("AUDIO_FREQ", AUDIO_FREQ_HZ)
        if audio_samples is None:
            audio_samples = env_int("AUDIO_SAMPLES", AUDIO_SAMPLES)

        # Construcción y conexión de componentes
        self._mmu = MMU(self._cartridge)
        self._cpu = CPU(self._mmu)
        self._mmu.set_cpu(self._cpu)

        self._timer = Timer()
        self._timer.set_mmu(self._mmu)
        self._mmu.set_timer(self._timer)

        self._joypad = Joypad(self._mmu)
        self._mmu.set_joypad(self._joypad)

        self._ppu = PPU(self._mmu, frame_sink)
        self._mmu.set_ppu(self._ppu)

        self._apu = APU(audio_freq=audio_freq, audio_samples=audio_samples)
        self._mmu.set_apu(self._apu)

        if trace is None:
            trace = env_flag("TRACE")
        self._clock = SystemClock(self._cpu, self._ppu, self._timer, self._apu, audio_sink, trace=trace)

        # T-Cycles ya consumidos del frame en curso (sobrante del anterior)
        self._frame_cycles = 0
        self.frame_count = 0

        self.breakpoint_addr: int | None = None
        self.breakpoint_hit = False
        if breakpoint_addr is not None:
            self.set_breakpoint(breakpoint_addr)

        self._initialize_post_boot_state()

        info = self._cartridge.get_header_info()
        logger.info(
            f"Emulador inicializado: '{info['title']}' "
            f"(tipo={info['cartridge_type']}, ROM={info['rom_size']}KB, RAM={info['ram_size']}KB)"
        )

    @classmethod
    def from_path(cls, rom_path: str | Path, **kwargs) -> Emulator:
        """
        Carga un archivo ROM y crea el emulador.

        Raises:
            FileNotFoundError: Si el archivo no existe
        """
        return cls(Cartridge.from_path(rom_path), **kwargs)

    def _initialize_post_boot_state(self) -> None:
        """Estado post-arranque DMG (registros de CPU e I/O)."""
        self._cpu.registers.reset_post_boot()
        for addr, value in POST_BOOT_IO:
            self._mmu.write_byte(addr, value)
        logger.debug(f"Post-Boot State (DMG): {self._cpu.registers!r}")

    # ========== Ejecución ==========

    def set_input(self, direction_mask: int, action_mask: int) -> None:
        """
        Aplica el estado del mando.

        Args:
            direction_mask: bits {right=0, left=1, up=2, down=3}, 1 = pulsado
            action_mask: bits {A=0, B=1, select=2, start=3}, 1 = pulsado
        """
        self._joypad.set_input(direction_mask & 0x0F, action_mask & 0x0F)

    def set_breakpoint(self, addr: int | None) -> None:
        """
        Fija (o quita con None) la dirección de parada.

        Raises:
            ValueError: Si la dirección no cabe en 16 bits
        """
        if addr is not None and not 0 <= addr <= 0xFFFF:
            raise ValueError(f"Breakpoint fuera de rango: 0x{addr:X}")
        self.breakpoint_addr = addr
        self.breakpoint_hit = False

    def run_frame(self, direction_mask: int | None = None, action_mask: int | None = None) -> bool:
        """
        Ejecuta un frame (70224 T-Cycles de presupuesto).

        Si se pasan máscaras de entrada se aplican antes de empezar. Con un
        breakpoint fijado, el frame se interrumpe en cuanto PC lo alcanza tras
        una instrucción; los ciclos consumidos se conservan para continuar.

        Returns:
            False si se detuvo en el breakpoint, True si completó el frame

        Raises:
            IllegalInstruction: Si la CPU decodifica un opcode inexistente
            HostSinkFailure: Si un sink del host falla
        """
        if direction_mask is not None or action_mask is not None:
            self.set_input(direction_mask or 0, action_mask or 0)

        self.breakpoint_hit = False
        clock = self._clock
        cycles = self._frame_cycles
        breakpoint_addr = self.breakpoint_addr
        if breakpoint_addr is None:
            while cycles < FRAME_T_CYCLES:
                cycles += clock.tick_instruction()
        else:
            registers = self._cpu.registers
            while cycles < FRAME_T_CYCLES:
                cycles += clock.tick_instruction()
                if registers.pc == breakpoint_addr:
                    self._frame_cycles = cycles
                    self.breakpoint_hit = True
                    logger.info(f"Breakpoint en 0x{breakpoint_addr:04X}: {registers!r}")
                    return False

        self._frame_cycles = cycles - FRAME_T_CYCLES
        self.frame_count += 1
        return True

    def run_frames(self, count: int) -> bool:
        """Ejecuta `count` frames seguidos. Devuelve False si se detuvo en el breakpoint."""
        for _ in range(count):
            if not self.run_frame():
                return False
        return True

    # ========== Accesores ==========

    @property
    def cpu(self) -> CPU:
        return self._cpu

    @property
    def mmu(self) -> MMU:
        return self._mmu

    @property
    def ppu(self) -> PPU:
        return self._ppu

    @property
    def apu(self) -> APU:
        return self._apu

    @property
    def timer(self) -> Timer:
        return self._timer

    @property
    def joypad(self) -> Joypad:
        return self._joypad

    @property
    def cartridge(self) -> Cartridge:
        return self._cartridge

    @property
    def clock(self) -> SystemClock:
        return self._clock

    def get_total_cycles(self) -> int:
        return self._clock.get_total_cycles()
