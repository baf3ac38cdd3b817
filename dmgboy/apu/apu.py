"""
APU (Audio Processing Unit) - Unidad de Procesamiento de Audio

Cuatro canales mezclados en estéreo:
- Canal 1: cuadrada con Sweep y envolvente (NR10-NR14)
- Canal 2: cuadrada con envolvente (NR21-NR24)
- Canal 3: onda programable (NR30-NR34, Wave RAM 0xFF30-0xFF3F)
- Canal 4: ruido LFSR con envolvente (NR41-NR44)

Control global:
- NR50 (0xFF24): volumen maestro. Bits 2-0 derecha, bits 6-4 izquierda
- NR51 (0xFF25): enrutado. Bits 0-3 canales 1-4 a la derecha, bits 4-7 a la izquierda
- NR52 (0xFF26): bit 7 enciende/apaga el APU; bits 0-3 (lectura) canales activos

Muestreo: el reloj de muestras es un TickCounter con periodo CPU_FREQ_HZ que
avanza `t * audio_freq` por cada `t` T-Cycles, así que se produce exactamente
una muestra estéreo cada CPU_FREQ_HZ / audio_freq T-Cycles (~87.38 a 48 kHz)
sin deriva acumulada. Cada muestra se escribe [izquierda, derecha] en un
buffer float32 de `audio_samples * 2` elementos; al llenarse se entrega al
host y se reserva uno nuevo.

Con el APU apagado (NR52 bit 7 = 0) no se producen muestras y se ignoran las
escrituras salvo NR52 y Wave RAM.

Fuente: Pan Docs - Audio Registers, Audio Details
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from ..config import AUDIO_CHANNELS, AUDIO_FREQ_HZ, AUDIO_SAMPLES, CPU_FREQ_HZ
from ..tick_counter import TickCounter
from .channels import NoiseChannel, SquareChannel, WaveChannel

logger = logging.getLogger(__name__)

# Registros de audio
NR10 = 0xFF10
NR11 = 0xFF11
NR12 = 0xFF12
NR13 = 0xFF13
NR14 = 0xFF14
NR21 = 0xFF16
NR22 = 0xFF17
NR23 = 0xFF18
NR24 = 0xFF19
NR30 = 0xFF1A
NR31 = 0xFF1B
NR32 = 0xFF1C
NR33 = 0xFF1D
NR34 = 0xFF1E
NR41 = 0xFF20
NR42 = 0xFF21
NR43 = 0xFF22
NR44 = 0xFF23
NR50 = 0xFF24
NR51 = 0xFF25
NR52 = 0xFF26
WAVE_RAM_START = 0xFF30
WAVE_RAM_END = 0xFF3F


class APU:
    """
    APU de la Game Boy.

    `update(t)` avanza los cuatro canales y devuelve la lista de buffers
    estéreo que se completaron (normalmente vacía).
    """

    def __init__(self, audio_freq: int = AUDIO_FREQ_HZ, audio_samples: int = AUDIO_SAMPLES) -> None:
        """
        Args:
            audio_freq: Frecuencia de muestreo del host (Hz)
            audio_samples: Frames estéreo por buffer entregado al host
        """
        if audio_freq <= 0 or audio_samples <= 0:
            raise ValueError(
                f"Configuración de audio inválida: freq={audio_freq}, samples={audio_samples}"
            )
        self.audio_freq = audio_freq
        self.audio_samples = audio_samples

        self.enabled = False
        self.left_volume = 0
        self.right_volume = 0
        self.routing = 0x00

        self.ch1 = SquareChannel(with_sweep=True)
        self.ch2 = SquareChannel()
        self.ch3 = WaveChannel()
        self.ch4 = NoiseChannel()
        self._handlers = self._build_write_handlers()

        self._sample_counter = TickCounter(CPU_FREQ_HZ)
        self.buffer = self._new_buffer()
        self.buffer_index = 0

        logger.debug(f"APU inicializado: {audio_freq} Hz, {audio_samples} frames por buffer")

    def _new_buffer(self) -> np.ndarray:
        return np.zeros(self.audio_samples * AUDIO_CHANNELS, dtype=np.float32)

    # ========== Registros ==========

    def read_register(self, addr: int) -> int:
        if addr == NR50:
            return self.right_volume | (self.left_volume << 4)
        if addr == NR51:
            return self.routing
        if addr == NR52:
            channels = (
                (0x01 if self.ch1.enabled else 0)
                | (0x02 if self.ch2.enabled else 0)
                | (0x04 if self.ch3.enabled else 0)
                | (0x08 if self.ch4.enabled else 0)
            )
            return (0x80 if self.enabled else 0x00) | 0x70 | channels
        if WAVE_RAM_START <= addr <= WAVE_RAM_END:
            return self.ch3.wave_ram[addr - WAVE_RAM_START]
        return 0xFF

    def write_register(self, addr: int, value: int) -> None:
        value &= 0xFF

        if WAVE_RAM_START <= addr <= WAVE_RAM_END:
            self.ch3.wave_ram[addr - WAVE_RAM_START] = value
            return

        if addr == NR52:
            self._write_master(value)
            return

        if not self.enabled:
            logger.debug(f"APU apagado: escritura ignorada en 0x{addr:04X} = 0x{value:02X}")
            return

        handler = self._handlers.get(addr)
        if handler is not None:
            handler(value)

    def _build_write_handlers(self) -> dict[int, Callable[[int], None]]:
        ch1, ch2, ch3, ch4 = self.ch1, self.ch2, self.ch3, self.ch4
        return {
            NR10: ch1.write_sweep,
            NR11: ch1.write_length_duty,
            NR12: ch1.write_envelope,
            NR13: ch1.write_frequency_low,
            NR14: ch1.write_frequency_high,
            NR21: ch2.write_length_duty,
            NR22: ch2.write_envelope,
            NR23: ch2.write_frequency_low,
            NR24: ch2.write_frequency_high,
            NR30: ch3.write_dac,
            NR31: ch3.write_length,
            NR32: ch3.write_output_level,
            NR33: ch3.write_frequency_low,
            NR34: ch3.write_frequency_high,
            NR41: ch4.write_length,
            NR42: ch4.write_envelope,
            NR43: ch4.write_polynomial,
            NR44: ch4.write_control,
            NR50: self._write_nr50,
            NR51: self._write_nr51,
        }

    def _write_nr50(self, value: int) -> None:
        # Los bits 7 y 3 (Vin) no se emulan
        self.right_volume = value & 0x07
        self.left_volume = (value >> 4) & 0x07

    def _write_nr51(self, value: int) -> None:
        self.routing = value

    def _write_master(self, value: int) -> None:
        enabled = bool(value & 0x80)
        if self.enabled and not enabled:
            # Apagar el APU reinicia todos los registros de sonido (la Wave RAM se conserva)
            wave_ram = self.ch3.wave_ram
            self.ch1 = SquareChannel(with_sweep=True)
            self.ch2 = SquareChannel()
            self.ch3 = WaveChannel()
            self.ch3.wave_ram = wave_ram
            self.ch4 = NoiseChannel()
            self.left_volume = 0
            self.right_volume = 0
            self.routing = 0x00
            self._handlers = self._build_write_handlers()
            logger.debug("APU apagado")
        elif enabled and not self.enabled:
            logger.debug("APU encendido")
        self.enabled = enabled

    # ========== Muestreo ==========

    def update(self, t_cycles: int) -> list[np.ndarray]:
        """
        Avanza los canales y el reloj de muestras.

        Args:
            t_cycles: T-Cycles transcurridos

        Returns:
            Buffers completos (la propiedad pasa al llamador). Lista vacía si
            el APU está apagado o ningún buffer se llenó.
        """
        if not self.enabled:
            return []

        self.ch1.tick(t_cycles)
        self.ch2.tick(t_cycles)
        self.ch3.tick(t_cycles)
        self.ch4.tick(t_cycles)

        samples = self._sample_counter.advance_all(t_cycles * self.audio_freq)
        if not samples:
            return []

        left, right = self.mix()
        completed: list[np.ndarray] = []
        for _ in range(samples):
            self.buffer[self.buffer_index] = left
            self.buffer[self.buffer_index + 1] = right
            self.buffer_index += 2
            if self.buffer_index == len(self.buffer):
                completed.append(self.buffer)
                self.buffer = self._new_buffer()
                self.buffer_index = 0
        return completed

    def mix(self) -> tuple[float, float]:
        """
        Mezcla los cuatro canales según NR51 y los escala con NR50.

        Returns:
            (izquierda, derecha), aproximadamente en [-1, 1]
        """
        amplitudes = (
            self.ch1.get_amplitude(),
            self.ch2.get_amplitude(),
            self.ch3.get_amplitude(),
            self.ch4.get_amplitude(),
        )
        routing = self.routing
        left = 0.0
        right = 0.0
        for index, amplitude in enumerate(amplitudes):
            if routing & (1 << index):
                right += amplitude
            if routing & (0x10 << index):
                left += amplitude
        right = right * self.right_volume / 7 / 4
        left = left * self.left_volume / 7 / 4
        return left, right
