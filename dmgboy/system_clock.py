"""
SystemClock: reparto de T-Cycles entre CPU, PPU, Timer y APU.

Cada instrucción de la CPU devuelve los T-Cycles que consumió y el reloj los
entrega al resto de subsistemas en un orden fijo y observable:

1. CPU.step() -> t
2. PPU.step(t)   (sus cambios de modo pueden activar bits de IF)
3. Timer.tick(t)
4. APU.update(t) (los buffers completos pasan al AudioSink)

Todo avanza en un único hilo y de forma determinista.

Fuente: Pan Docs - Timing
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .cpu.disassembler import disassemble
from .errors import HostSinkFailure
from .host import NullAudioSink

if TYPE_CHECKING:
    from .apu.apu import APU
    from .cpu.core import CPU
    from .gpu.ppu import PPU
    from .host import AudioSink
    from .io.timer import Timer

logger = logging.getLogger(__name__)

# Traza por instrucción (DMGBOY_TRACE=1): va a su propio logger para poder
# activarla sin el resto de mensajes DEBUG
trace_logger = logging.getLogger("dmgboy.trace")


def format_trace(cpu: CPU, timer: Timer | None, pc: int, text: str) -> str:
    """
    Línea de traza: instrucción ejecutada y estado tras ejecutarla.

    Formato: `0xPPPP: MNEMONIC  af=.. bc=.. de=.. hl=.. sp=.. pc=.. Z N H C ime tima`
    """
    regs = cpu.registers
    tima = timer.read_tima() if timer is not None else 0
    return (
        f"0x{pc:04X}: {text:<16} "
        f"af={regs.get_af():04X} bc={regs.get_bc():04X} de={regs.get_de():04X} hl={regs.get_hl():04X} "
        f"sp={regs.sp:04X} pc={regs.pc:04X} "
        f"Z={int(regs.get_flag_z())} N={int(regs.get_flag_n())} "
        f"H={int(regs.get_flag_h())} C={int(regs.get_flag_c())} "
        f"ime={int(cpu.ime)} tima={tima:02X}"
    )


class SystemClock:
    """
    Reloj maestro del sistema que coordina CPU, PPU, Timer y APU.

    Con `trace=True` cada paso emite una línea en el logger `dmgboy.trace`
    (nivel DEBUG) con el mnemónico y el estado de registros.
    """

    def __init__(
        self,
        cpu: CPU,
        ppu: PPU | None = None,
        timer: Timer | None = None,
        apu: APU | None = None,
        audio_sink: AudioSink | None = None,
        trace: bool = False,
    ) -> None:
        self._cpu = cpu
        self._ppu = ppu
        self._timer = timer
        self._apu = apu
        self.audio_sink: AudioSink = audio_sink if audio_sink is not None else NullAudioSink()
        self.trace = trace
        self._total_cycles = 0

    def tick_instruction(self) -> int:
        """
        Ejecuta un paso de CPU y sincroniza todos los subsistemas.

        Returns:
            T-Cycles consumidos por el paso

        Raises:
            IllegalInstruction: Si la CPU decodifica un opcode inexistente
            HostSinkFailure: Si el FrameSink o el AudioSink fallan
        """
        if self.trace:
            pc = self._cpu.registers.pc
            text, _ = disassemble(self._cpu.mmu.read_byte, pc)

        t_cycles = self._cpu.step()

        if self._ppu is not None:
            self._ppu.step(t_cycles)

        if self._timer is not None:
            self._timer.tick(t_cycles)

        if self._apu is not None:
            for buffer in self._apu.update(t_cycles):
                self._emit_audio(buffer)

        if self.trace:
            trace_logger.debug(format_trace(self._cpu, self._timer, pc, text))

        self._total_cycles += t_cycles
        return t_cycles

    def _emit_audio(self, buffer) -> None:
        try:
            self.audio_sink.enqueue_audio(buffer)
        except HostSinkFailure:
            raise
        except Exception as e:
            raise HostSinkFailure("enqueue_audio", str(e)) from e

    def get_total_cycles(self) -> int:
        """T-Cycles ejecutados desde el inicio."""
        return self._total_cycles
