"""
Timer - Sistema de Temporización de la Game Boy

Registros del Timer:
- DIV (0xFF04): Divider Register - incrementa cada 256 T-Cycles (16384 Hz)
- TIMA (0xFF05): Timer Counter - contador configurable que genera interrupciones
- TMA (0xFF06): Timer Modulo - valor de recarga cuando TIMA desborda
- TAC (0xFF07): Timer Control
  - Bit 2: Enable (1=Timer encendido, 0=Timer apagado)
  - Bits 1-0: Divisor (00=1024, 01=16, 10=64, 11=256 T-Cycles por incremento)

Cuando TIMA desborda (pasa de 0xFF a 0x100):
1. TIMA se recarga con TMA
2. Se solicita la Interrupción Timer (Bit 2 de IF, 0xFF0F)

Ambas cosas ocurren en la misma llamada a `tick()`.

Cualquier escritura en DIV lo pone a 0 y reinicia los dos acumuladores.

Fuente: Pan Docs - Timer and Divider Registers
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..memory.mmu import MMU

logger = logging.getLogger(__name__)

# T-Cycles por incremento de DIV: 4194304 / 16384 = 256
DIV_T_CYCLES_PER_INCREMENT = 256

# T-Cycles por incremento de TIMA según TAC bits 1-0
TAC_DIVIDERS = (1024, 16, 64, 256)

# Máscaras de bits para TAC
TAC_ENABLE_MASK = 0x04  # Bit 2: Enable
TAC_FREQ_MASK = 0x03  # Bits 1-0: Frecuencia

# Bit 2 de IF
TIMER_INTERRUPT_BIT = 0x04


class Timer:
    """
    Timer de la Game Boy: DIV, TIMA, TMA y TAC con dos acumuladores de T-Cycles.

    Necesita la MMU (vía `set_mmu`) para solicitar la interrupción de overflow.
    """

    def __init__(self) -> None:
        self._div: int = 0
        self._tima: int = 0
        self._tma: int = 0
        self._tac: int = 0

        # Acumuladores de T-Cycles pendientes
        self._div_accumulator: int = 0
        self._tima_accumulator: int = 0

        self._mmu: MMU | None = None

        logger.debug("Timer inicializado (DIV=0, TIMA=0, TMA=0, TAC=0)")

    def tick(self, t_cycles: int) -> None:
        """
        Avanza el Timer según los T-Cycles transcurridos.

        Args:
            t_cycles: Número de T-Cycles transcurridos desde la última llamada
        """
        if self._tac & TAC_ENABLE_MASK:
            divider = TAC_DIVIDERS[self._tac & TAC_FREQ_MASK]
            self._tima_accumulator += t_cycles
            while self._tima_accumulator >= divider:
                self._tima_accumulator -= divider
                self.increment_tima()

        self._div_accumulator += t_cycles
        while self._div_accumulator >= DIV_T_CYCLES_PER_INCREMENT:
            self._div_accumulator -= DIV_T_CYCLES_PER_INCREMENT
            self._div = (self._div + 1) & 0xFF

    def increment_tima(self) -> None:
        """
        Incrementa TIMA. En overflow recarga TMA y activa el bit 2 de IF.
        """
        tima = self._tima + 1
        if tima > 0xFF:
            self._tima = self._tma
            self._request_timer_interrupt()
        else:
            self._tima = tima

    def _request_timer_interrupt(self) -> None:
        if self._mmu is not None:
            self._mmu.request_interrupt(TIMER_INTERRUPT_BIT)
            logger.debug(f"Timer: Interrupción solicitada (TIMA overflow, recarga TMA=0x{self._tma:02X})")

    def read_div(self) -> int:
        return self._div

    def write_div(self, value: int) -> None:
        """
        Escribe en DIV (0xFF04). El valor se ignora: DIV y ambos acumuladores vuelven a 0.
        """
        self._div = 0
        self._div_accumulator = 0
        self._tima_accumulator = 0
        logger.debug(f"Timer: DIV reseteado (valor escrito ignorado: 0x{value:02X})")

    def read_tima(self) -> int:
        return self._tima

    def write_tima(self, value: int) -> None:
        self._tima = value & 0xFF

    def read_tma(self) -> int:
        return self._tma

    def write_tma(self, value: int) -> None:
        self._tma = value & 0xFF

    def read_tac(self) -> int:
        # Solo los bits 0-2 son significativos, los demás se leen como 1
        return (self._tac & 0x07) | 0xF8

    def write_tac(self, value: int) -> None:
        self._tac = value & 0x07
        logger.debug(
            f"Timer: TAC escrito = 0x{self._tac:02X} "
            f"(Enable={bool(self._tac & TAC_ENABLE_MASK)}, Divisor={TAC_DIVIDERS[self._tac & TAC_FREQ_MASK]})"
        )

    def get_tima_accumulator(self) -> int:
        """T-Cycles acumulados hacia el siguiente incremento de TIMA (útil en tests)."""
        return self._tima_accumulator

    def set_mmu(self, mmu: MMU) -> None:
        """
        Conecta la MMU para poder solicitar interrupciones.

        Se llama después de crear Timer y MMU para evitar dependencias circulares.
        """
        self._mmu = mmu
