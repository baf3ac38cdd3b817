"""
MMU (Memory Management Unit) - Unidad de Gestión de Memoria

La Game Boy tiene un espacio de direcciones de 16 bits (0x0000 a 0xFFFF).
Este espacio está dividido en regiones que mapean a diferentes componentes:

- 0x0000 - 0x7FFF: ROM del cartucho (bancos según el MBC)
- 0x8000 - 0x9FFF: VRAM (propiedad de la PPU, 8KB)
- 0xA000 - 0xBFFF: RAM externa del cartucho
- 0xC000 - 0xDFFF: WRAM (Working RAM, 8KB)
- 0xE000 - 0xFDFF: Echo RAM (espejo de 0xC000-0xDDFF)
- 0xFE00 - 0xFE9F: OAM (propiedad de la PPU, 160 bytes)
- 0xFEA0 - 0xFEFF: No usable (0xFF en modos 2/3, 0x00 en el resto; escrituras ignoradas)
- 0xFF00 - 0xFF7F: I/O Ports (Joypad, Timer, IF, APU, PPU)
- 0xFF80 - 0xFFFE: HRAM (High RAM, 127 bytes)
- 0xFFFF: IE (Interrupt Enable Register)

La MMU solo posee WRAM y HRAM. El resto de regiones se enrutan al componente
dueño, conectado con los métodos `set_*` tras construir todos los objetos.

CRÍTICO: La Game Boy usa Little-Endian para valores de 16 bits.

Fuente: Pan Docs - Memory Map, I/O Ports
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..apu.apu import APU
    from ..cpu.core import CPU
    from ..gpu.ppu import PPU
    from ..io.joypad import Joypad
    from ..io.timer import Timer
    from .cartridge import Cartridge

logger = logging.getLogger(__name__)

# ========== Constantes de Registros de Hardware (I/O Ports) ==========

# Joypad y serie
IO_P1 = 0xFF00    # Joypad Input
IO_SB = 0xFF01    # Serial Transfer Data (no implementado)
IO_SC = 0xFF02    # Serial Transfer Control (no implementado)

# Timer
IO_DIV = 0xFF04   # Divider Register
IO_TIMA = 0xFF05  # Timer Counter
IO_TMA = 0xFF06   # Timer Modulo
IO_TAC = 0xFF07   # Timer Control

# Interrupciones
IO_IF = 0xFF0F    # Interrupt Flag
IO_IE = 0xFFFF    # Interrupt Enable

# APU: registros NR10-NR52 y Wave RAM
IO_APU_START = 0xFF10
IO_APU_END = 0xFF3F

# PPU
IO_LCDC = 0xFF40
IO_STAT = 0xFF41
IO_SCY = 0xFF42
IO_SCX = 0xFF43
IO_LY = 0xFF44
IO_LYC = 0xFF45
IO_DMA = 0xFF46
IO_BGP = 0xFF47
IO_OBP0 = 0xFF48
IO_OBP1 = 0xFF49
IO_WY = 0xFF4A
IO_WX = 0xFF4B

# Mapeo de direcciones a nombres de registros (para logging)
IO_REGISTER_NAMES: dict[int, str] = {
    IO_P1: "P1",
    IO_SB: "SB",
    IO_SC: "SC",
    IO_DIV: "DIV",
    IO_TIMA: "TIMA",
    IO_TMA: "TMA",
    IO_TAC: "TAC",
    IO_IF: "IF",
    IO_LCDC: "LCDC",
    IO_STAT: "STAT",
    IO_SCY: "SCY",
    IO_SCX: "SCX",
    IO_LY: "LY",
    IO_LYC: "LYC",
    IO_DMA: "DMA",
    IO_BGP: "BGP",
    IO_OBP0: "OBP0",
    IO_OBP1: "OBP1",
    IO_WY: "WY",
    IO_WX: "WX",
    IO_IE: "IE",
}

# Tamaños de las regiones propias de la MMU
WRAM_SIZE = 0x2000  # 8KB
HRAM_SIZE = 0x7F    # 127 bytes

# La DMA de OAM copia 160 bytes (40 sprites * 4 bytes)
DMA_TRANSFER_SIZE = 160


class MMU:
    """
    Unidad de Gestión de Memoria (MMU) de la Game Boy.

    Enruta cada dirección al componente que la posee y proporciona métodos
    para leer y escribir bytes (8 bits) y palabras (16 bits, Little-Endian).
    """

    def __init__(self, cartridge: Cartridge | None = None) -> None:
        """
        Args:
            cartridge: Cartucho a mapear en 0x0000-0x7FFF y 0xA000-0xBFFF
        """
        self._wram = bytearray(WRAM_SIZE)
        self._hram = bytearray(HRAM_SIZE)

        self._cartridge: Cartridge | None = cartridge

        # Componentes conectados después de la construcción (evita dependencias circulares)
        self._cpu: CPU | None = None
        self._ppu: PPU | None = None
        self._apu: APU | None = None
        self._timer: Timer | None = None
        self._joypad: Joypad | None = None

        # IE/IF viven en la CPU. Estos latches solo se usan sin CPU conectada
        self._ie_latch: int = 0x00
        self._if_latch: int = 0x00

    # ========== Conexión de componentes ==========

    def set_cpu(self, cpu: CPU) -> None:
        """
        Conecta la CPU, que pasa a ser la dueña de IE e IF.

        Los valores escritos antes de conectarla se traspasan.
        """
        self._cpu = cpu
        cpu.interrupt_enable = self._ie_latch
        cpu.interrupt_flag = self._if_latch
        logger.debug("MMU: CPU conectada (IE/IF)")

    def set_ppu(self, ppu: PPU) -> None:
        self._ppu = ppu
        logger.debug("MMU: PPU conectada (VRAM, OAM y registros LCD)")

    def set_apu(self, apu: APU) -> None:
        self._apu = apu
        logger.debug("MMU: APU conectada (NR10-NR52, Wave RAM)")

    def set_joypad(self, joypad: Joypad) -> None:
        self._joypad = joypad
        logger.debug("MMU: Joypad conectado para lectura/escritura de P1")

    def set_timer(self, timer: Timer) -> None:
        self._timer = timer
        logger.debug("MMU: Timer conectado (DIV, TIMA, TMA, TAC)")

    # ========== Interrupciones ==========

    def request_interrupt(self, mask: int) -> None:
        """
        Activa bits en IF. Lo usan PPU, Timer y Joypad.

        Args:
            mask: Bits a activar (0x01 V-Blank, 0x02 STAT, 0x04 Timer, 0x08 Serial, 0x10 Joypad)
        """
        if self._cpu is not None:
            self._cpu.request_interrupt(mask)
        else:
            self._if_latch = (self._if_latch | mask) & 0x1F

    def _read_if(self) -> int:
        value = self._cpu.interrupt_flag if self._cpu is not None else self._if_latch
        return 0xE0 | (value & 0x1F)

    def _write_if(self, value: int) -> None:
        if self._cpu is not None:
            self._cpu.interrupt_flag = value & 0x1F
        else:
            self._if_latch = value & 0x1F

    def _read_ie(self) -> int:
        return self._cpu.interrupt_enable if self._cpu is not None else self._ie_latch

    def _write_ie(self, value: int) -> None:
        if self._cpu is not None:
            self._cpu.interrupt_enable = value
        else:
            self._ie_latch = value

    # ========== Acceso a bytes ==========

    def read_byte(self, addr: int) -> int:
        """
        Lee un byte (8 bits) de la dirección especificada.

        Args:
            addr: Dirección de memoria (0x0000 a 0xFFFF)

        Returns:
            Valor del byte leído (0x00 a 0xFF)
        """
        addr &= 0xFFFF

        # ROM (0x0000-0x7FFF) y RAM externa (0xA000-0xBFFF)
        if addr < 0x8000 or 0xA000 <= addr < 0xC000:
            if self._cartridge is None:
                return 0xFF
            return self._cartridge.read_byte(addr)

        if addr < 0xA000:
            return self._require_ppu().vram[addr - 0x8000]

        if addr < 0xE000:
            return self._wram[addr - 0xC000]

        # Echo RAM
        if addr < 0xFE00:
            return self._wram[addr - 0xE000]

        if addr < 0xFEA0:
            return self._require_ppu().oam[addr - 0xFE00]

        # Zona no usable
        if addr < 0xFF00:
            if self._ppu is not None and self._ppu.mode in (2, 3):
                return 0xFF
            return 0x00

        if addr < 0xFF80:
            return self._read_io(addr)

        if addr < 0xFFFF:
            return self._hram[addr - 0xFF80]

        return self._read_ie()

    def write_byte(self, addr: int, value: int) -> None:
        """
        Escribe un byte (8 bits) en la dirección especificada.

        Las escrituras en 0x0000-0x7FFF se envían al cartucho como comandos MBC.

        Args:
            addr: Dirección de memoria (0x0000 a 0xFFFF)
            value: Valor a escribir (se enmascara a 8 bits)
        """
        addr &= 0xFFFF
        value &= 0xFF

        if addr < 0x8000 or 0xA000 <= addr < 0xC000:
            if self._cartridge is not None:
                self._cartridge.write_byte(addr, value)
            return

        if addr < 0xA000:
            self._require_ppu().vram[addr - 0x8000] = value
            return

        if addr < 0xE000:
            self._wram[addr - 0xC000] = value
            return

        if addr < 0xFE00:
            self._wram[addr - 0xE000] = value
            return

        if addr < 0xFEA0:
            self._require_ppu().oam[addr - 0xFE00] = value
            return

        if addr < 0xFF00:
            # Zona no usable: se ignora
            return

        if addr < 0xFF80:
            self._write_io(addr, value)
            return

        if addr < 0xFFFF:
            self._hram[addr - 0xFF80] = value
            return

        self._write_ie(value)

    # ========== I/O Ports ==========

    def _read_io(self, addr: int) -> int:
        if addr == IO_P1:
            if self._joypad is None:
                # Sin Joypad: todos los botones sueltos
                return 0xFF
            return self._joypad.read() & 0xFF

        if IO_DIV <= addr <= IO_TAC:
            if self._timer is None:
                return 0xFF
            if addr == IO_DIV:
                return self._timer.read_div()
            if addr == IO_TIMA:
                return self._timer.read_tima()
            if addr == IO_TMA:
                return self._timer.read_tma()
            return self._timer.read_tac()

        if addr == IO_IF:
            return self._read_if()

        if IO_APU_START <= addr <= IO_APU_END:
            if self._apu is None:
                return 0xFF
            return self._apu.read_register(addr)

        if IO_LCDC <= addr <= IO_WX:
            if self._ppu is None:
                return 0xFF
            return self._ppu.read_register(addr)

        # Serie (FF01-FF02) y registros no mapeados
        logger.debug(f"IO READ: {IO_REGISTER_NAMES.get(addr, f'IO_0x{addr:04X}')} no mapeado -> 0xFF")
        return 0xFF

    def _write_io(self, addr: int, value: int) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            reg_name = IO_REGISTER_NAMES.get(addr, f"IO_0x{addr:04X}")
            logger.debug(f"IO WRITE: {reg_name} = 0x{value:02X} (addr: 0x{addr:04X})")

        if addr == IO_P1:
            if self._joypad is not None:
                self._joypad.write(value)
            return

        if IO_DIV <= addr <= IO_TAC:
            if self._timer is None:
                return
            if addr == IO_DIV:
                self._timer.write_div(value)
            elif addr == IO_TIMA:
                self._timer.write_tima(value)
            elif addr == IO_TMA:
                self._timer.write_tma(value)
            else:
                self._timer.write_tac(value)
            return

        if addr == IO_IF:
            self._write_if(value)
            return

        if IO_APU_START <= addr <= IO_APU_END:
            if self._apu is not None:
                self._apu.write_register(addr, value)
            return

        if addr == IO_DMA:
            self._dma_transfer(value)
            return

        if IO_LCDC <= addr <= IO_WX:
            if self._ppu is not None:
                self._ppu.write_register(addr, value)
            return

        # Serie (FF01-FF02) y registros no mapeados: se ignoran

    def _dma_transfer(self, value: int) -> None:
        """
        DMA de OAM: copia 160 bytes desde `value << 8` a OAM (0xFE00-0xFE9F).

        La transferencia es síncrona.

        Fuente: Pan Docs - OAM DMA Transfer
        """
        ppu = self._require_ppu()
        data = self.slice_at_prefix(value, DMA_TRANSFER_SIZE)
        ppu.oam[0:DMA_TRANSFER_SIZE] = data
        ppu.dma_source = value
        logger.debug(f"DMA: {DMA_TRANSFER_SIZE} bytes desde 0x{value << 8:04X} a OAM")

    def slice_at_prefix(self, prefix: int, size: int = DMA_TRANSFER_SIZE) -> bytes:
        """
        Lee `size` bytes consecutivos desde la dirección `prefix << 8`.

        Los prefijos del cartucho pasan por su banking (`Cartridge.read_slice`);
        el resto se lee byte a byte a través del mapa de memoria.
        """
        prefix &= 0xFF
        if self._cartridge is not None and (prefix < 0x80 or 0xA0 <= prefix < 0xC0):
            return self._cartridge.read_slice(prefix, size)
        base = prefix << 8
        return bytes(self.read_byte((base + i) & 0xFFFF) for i in range(size))

    def _require_ppu(self) -> PPU:
        if self._ppu is None:
            raise RuntimeError("MMU: acceso a VRAM/OAM sin PPU conectada")
        return self._ppu

    # ========== Acceso a palabras (16 bits) ==========

    def read_word(self, addr: int) -> int:
        """
        Lee una palabra Little-Endian: (byte[addr+1] << 8) | byte[addr].

        Si addr es 0xFFFF, addr+1 hace wrap-around a 0x0000.
        """
        addr &= 0xFFFF
        lsb = self.read_byte(addr)
        msb = self.read_byte((addr + 1) & 0xFFFF)
        return (msb << 8) | lsb

    def write_word(self, addr: int, value: int) -> None:
        """
        Escribe una palabra Little-Endian: LSB en addr, MSB en addr+1.
        """
        addr &= 0xFFFF
        value &= 0xFFFF
        self.write_byte(addr, value & 0xFF)
        self.write_byte((addr + 1) & 0xFFFF, value >> 8)
