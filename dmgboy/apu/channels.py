"""
Canales de sonido del APU

- SquareChannel: onda cuadrada con 4 ciclos de trabajo y envolvente.
  El canal 1 añade un Sweep de frecuencia.
- WaveChannel: 32 muestras de 4 bits en Wave RAM (0xFF30-0xFF3F).
- NoiseChannel: ruido con un LFSR de 15 bits.

Todos los temporizadores (frecuencia, envolvente, sweep, longitud) son
TickCounter avanzados con los T-Cycles que reparte el driver. Cada canal
devuelve una amplitud en [-1, 1] con `get_amplitude()`.

Trigger (bit 7 de NRx4): reinicia la fase, rearma sweep/envolvente/longitud
y vuelve a habilitar el canal.

Fuente: Pan Docs - Audio Registers, Audio Details
"""

from __future__ import annotations

from ..tick_counter import TickCounter

# T-Cycles por paso de envolvente (1/64 s), de sweep (1/128 s) y de longitud (1/256 s)
ENVELOPE_STEP_T_CYCLES = 65536
SWEEP_STEP_T_CYCLES = 32768
LENGTH_STEP_T_CYCLES = 16384

# Ciclos de trabajo: 12.5%, 25%, 50%, 75%
DUTY_WAVEFORMS = (
    (-1.0, -1.0, -1.0, -1.0, -1.0, -1.0, -1.0, +1.0),
    (-1.0, -1.0, -1.0, -1.0, -1.0, -1.0, +1.0, +1.0),
    (-1.0, -1.0, -1.0, -1.0, +1.0, +1.0, +1.0, +1.0),
    (+1.0, +1.0, +1.0, +1.0, +1.0, +1.0, -1.0, -1.0),
)

MAX_FREQUENCY = 2047
LFSR_SEED = 0x7FFF

# Desplazamiento del nivel de salida del canal de onda (NR32 bits 6-5)
WAVE_OUTPUT_SHIFTS = (None, 0, 1, 2)


class Envelope:
    """
    Envolvente de volumen (NRx2).

    - Bits 7-4: volumen inicial (0-15)
    - Bit 3: dirección (0 = baja, 1 = sube)
    - Bits 2-0: periodo N. Con N != 0, un paso cada N * 65536 T-Cycles
    """

    def __init__(self, value: int = 0) -> None:
        self.initial_volume = 0
        self.increasing = False
        self.period = 0
        self.volume = 0
        self._counter: TickCounter | None = None
        self.write(value)

    def write(self, value: int) -> None:
        self.initial_volume = (value >> 4) & 0x0F
        self.increasing = bool(value & 0x08)
        self.period = value & 0x07

    def read(self) -> int:
        return (self.initial_volume << 4) | (0x08 if self.increasing else 0) | self.period

    @property
    def dac_enabled(self) -> bool:
        """El DAC está apagado si volumen inicial = 0 y dirección = bajar."""
        return (self.read() & 0xF8) != 0

    def trigger(self) -> None:
        self.volume = self.initial_volume
        if self.period == 0:
            self._counter = None
        else:
            self._counter = TickCounter(self.period * ENVELOPE_STEP_T_CYCLES)

    def tick(self, t_cycles: int) -> None:
        if self._counter is None:
            return
        steps = self._counter.advance_all(t_cycles)
        if not steps:
            return
        if self.increasing:
            self.volume = min(15, self.volume + steps)
        else:
            self.volume = max(0, self.volume - steps)

    def get_amplitude(self, source: float) -> float:
        if self.initial_volume == 0:
            return 0.0
        return source * self.volume / 15


class Sweep:
    """
    Sweep de frecuencia del canal 1 (NR10).

    - Bits 6-4: periodo (0 = desactivado). Un paso cada periodo * 32768 T-Cycles
    - Bit 3: dirección (0 = suma, 1 = resta)
    - Bits 2-0: desplazamiento

    Cada paso: nueva = freq ± (freq >> shift). Fuera de 1..2047 el canal se apaga.
    """

    def __init__(self) -> None:
        self.period = 0
        self.decreasing = False
        self.shift = 0
        self.frequency = 0
        self._counter: TickCounter | None = None

    def write(self, value: int) -> None:
        self.period = (value >> 4) & 0x07
        self.decreasing = bool(value & 0x08)
        self.shift = value & 0x07

    def read(self) -> int:
        return (self.period << 4) | (0x08 if self.decreasing else 0) | self.shift

    def trigger(self, frequency: int) -> None:
        self.frequency = frequency
        if self.period == 0:
            self._counter = None
        else:
            self._counter = TickCounter(self.period * SWEEP_STEP_T_CYCLES)

    def tick(self, t_cycles: int) -> tuple[int, bool] | None:
        """
        Avanza el sweep.

        Returns:
            None si no hubo paso; si lo hubo, (frecuencia, sigue_habilitado)
        """
        if self._counter is None or not self._counter.advance(t_cycles):
            return None
        delta = self.frequency >> self.shift
        new_frequency = self.frequency - delta if self.decreasing else self.frequency + delta
        if not 0 < new_frequency <= MAX_FREQUENCY:
            self._counter = None
            return self.frequency, False
        self.frequency = new_frequency
        return new_frequency, True


class LengthCounter:
    """
    Contador de longitud: con el bit 6 de NRx4 activo apaga el canal tras
    (max_length - length) * 16384 T-Cycles.
    """

    def __init__(self, max_length: int) -> None:
        self.max_length = max_length
        self.length = 0
        self.enabled = False
        self._counter: TickCounter | None = None

    def load(self, length: int) -> None:
        self.length = length

    def trigger(self) -> None:
        self._counter = TickCounter((self.max_length - self.length) * LENGTH_STEP_T_CYCLES)

    def tick(self, t_cycles: int) -> bool:
        """Devuelve True cuando el contador expira."""
        if not self.enabled or self._counter is None:
            return False
        if self._counter.advance(t_cycles):
            self._counter = None
            return True
        return False


class SquareChannel:
    """
    Canal de onda cuadrada (NR1x / NR2x).

    Periodo de frecuencia = (2048 - freq) * 4 T-Cycles; cada flanco avanza la
    posición del ciclo de trabajo (módulo 8).
    """

    def __init__(self, with_sweep: bool = False) -> None:
        self.enabled = False
        self.frequency = 0
        self.duty = 0
        self.duty_pos = 0
        # Flancos de fase desde el último trigger
        self.phase_steps = 0

        self.envelope = Envelope()
        self.sweep: Sweep | None = Sweep() if with_sweep else None
        self.length = LengthCounter(64)
        self._freq_counter = TickCounter(self._period())

    def _period(self) -> int:
        return (2048 - self.frequency) * 4

    def _set_frequency(self, frequency: int) -> None:
        self.frequency = frequency & 0x7FF
        self._freq_counter.rearm(self._period())

    def write_sweep(self, value: int) -> None:
        if self.sweep is not None:
            self.sweep.write(value)

    def write_length_duty(self, value: int) -> None:
        self.duty = (value >> 6) & 0x03
        self.length.load(value & 0x3F)

    def write_envelope(self, value: int) -> None:
        self.envelope.write(value)
        if not self.envelope.dac_enabled:
            self.enabled = False

    def write_frequency_low(self, value: int) -> None:
        self._set_frequency((self.frequency & 0x700) | value)

    def write_frequency_high(self, value: int) -> None:
        self._set_frequency((self.frequency & 0xFF) | ((value & 0x07) << 8))
        self.length.enabled = bool(value & 0x40)
        if value & 0x80:
            self.trigger()

    def trigger(self) -> None:
        self.enabled = self.envelope.dac_enabled
        self.duty_pos = 0
        self.phase_steps = 0
        self._freq_counter.rearm(self._period())
        self._freq_counter.reset()
        self.envelope.trigger()
        self.length.trigger()
        if self.sweep is not None:
            self.sweep.trigger(self.frequency)

    def tick(self, t_cycles: int) -> None:
        edges = self._freq_counter.advance_all(t_cycles)
        if edges:
            self.duty_pos = (self.duty_pos + edges) % 8
            self.phase_steps += edges

        if self.sweep is not None:
            result = self.sweep.tick(t_cycles)
            if result is not None:
                frequency, still_enabled = result
                if still_enabled:
                    self._set_frequency(frequency)
                else:
                    self.enabled = False

        self.envelope.tick(t_cycles)

        if self.length.tick(t_cycles):
            self.enabled = False

    def get_amplitude(self) -> float:
        if not self.enabled:
            return 0.0
        return self.envelope.get_amplitude(DUTY_WAVEFORMS[self.duty][self.duty_pos])


class WaveChannel:
    """
    Canal de onda programable (NR3x).

    Periodo = (2048 - freq) * 2 T-Cycles; cada flanco avanza la posición (0-31).
    Las posiciones pares leen el nibble alto del byte de Wave RAM y las impares
    el bajo.
    """

    def __init__(self) -> None:
        self.enabled = False
        self.dac_enabled = False
        self.frequency = 0
        self.output_level = 0
        self.position = 0
        self.wave_ram = bytearray(16)
        self.length = LengthCounter(256)
        self._freq_counter = TickCounter(self._period())

    def _period(self) -> int:
        return (2048 - self.frequency) * 2

    def _set_frequency(self, frequency: int) -> None:
        self.frequency = frequency & 0x7FF
        self._freq_counter.rearm(self._period())

    def write_dac(self, value: int) -> None:
        self.dac_enabled = bool(value & 0x80)
        if not self.dac_enabled:
            self.enabled = False

    def write_length(self, value: int) -> None:
        self.length.load(value & 0xFF)

    def write_output_level(self, value: int) -> None:
        self.output_level = (value >> 5) & 0x03

    def write_frequency_low(self, value: int) -> None:
        self._set_frequency((self.frequency & 0x700) | value)

    def write_frequency_high(self, value: int) -> None:
        self._set_frequency((self.frequency & 0xFF) | ((value & 0x07) << 8))
        self.length.enabled = bool(value & 0x40)
        if value & 0x80:
            self.trigger()

    def trigger(self) -> None:
        self.enabled = self.dac_enabled
        self.position = 0
        self._freq_counter.rearm(self._period())
        self._freq_counter.reset()
        self.length.trigger()

    def tick(self, t_cycles: int) -> None:
        edges = self._freq_counter.advance_all(t_cycles)
        if edges:
            self.position = (self.position + edges) % 32
        if self.length.tick(t_cycles):
            self.enabled = False

    def current_sample(self) -> int:
        byte = self.wave_ram[self.position // 2]
        return byte >> 4 if self.position % 2 == 0 else byte & 0x0F

    def get_amplitude(self) -> float:
        if not self.enabled:
            return 0.0
        shift = WAVE_OUTPUT_SHIFTS[self.output_level]
        if shift is None:
            return 0.0
        return (self.current_sample() >> shift) / 7.5 - 1.0


class NoiseChannel:
    """
    Canal de ruido (NR4x).

    NR43: bits 7-4 shift, bit 3 width mode (7 bits), bits 2-0 código de divisor.
    Periodo = divisor << shift, con divisor = 8 para el código 0 y code << 4 en el resto.
    """

    def __init__(self) -> None:
        self.enabled = False
        self.shift = 0
        self.width_mode = False
        self.divisor_code = 0
        self.lfsr = LFSR_SEED
        self.envelope = Envelope()
        self.length = LengthCounter(64)
        self._freq_counter = TickCounter(self._period())

    def _period(self) -> int:
        divisor = 8 if self.divisor_code == 0 else self.divisor_code << 4
        return divisor << self.shift

    def write_length(self, value: int) -> None:
        self.length.load(value & 0x3F)

    def write_envelope(self, value: int) -> None:
        self.envelope.write(value)
        if not self.envelope.dac_enabled:
            self.enabled = False

    def write_polynomial(self, value: int) -> None:
        self.shift = (value >> 4) & 0x0F
        self.width_mode = bool(value & 0x08)
        self.divisor_code = value & 0x07
        self._freq_counter.rearm(self._period())

    def read_polynomial(self) -> int:
        return (self.shift << 4) | (0x08 if self.width_mode else 0) | self.divisor_code

    def write_control(self, value: int) -> None:
        self.length.enabled = bool(value & 0x40)
        if value & 0x80:
            self.trigger()

    def trigger(self) -> None:
        self.enabled = self.envelope.dac_enabled
        self.lfsr = LFSR_SEED
        self._freq_counter.reset()
        self.envelope.trigger()
        self.length.trigger()

    def _clock_lfsr(self) -> None:
        lfsr = self.lfsr
        tap = (lfsr & 0x01) ^ ((lfsr >> 1) & 0x01)
        lfsr = (lfsr >> 1) | (tap << 14)
        if self.width_mode:
            lfsr = (lfsr & ~0x40) | (tap << 6)
        self.lfsr = lfsr

    def tick(self, t_cycles: int) -> None:
        for _ in range(self._freq_counter.advance_all(t_cycles)):
            self._clock_lfsr()
        self.envelope.tick(t_cycles)
        if self.length.tick(t_cycles):
            self.enabled = False

    def get_amplitude(self) -> float:
        if not self.enabled:
            return 0.0
        return self.envelope.get_amplitude(float((1 & ~self.lfsr) * 2 - 1))
