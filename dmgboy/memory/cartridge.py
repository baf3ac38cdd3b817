"""
Cartridge (Cartucho) - ROM, RAM externa y Mappers

Los juegos de Game Boy se distribuyen como archivos binarios (`.gb`). Cada ROM
empieza con un **Header (Cabecera)** en 0x0100 - 0x014F que describe el cartucho:
- Título del juego (0x0134 - 0x0143)
- Tipo de Cartucho / MBC (0x0147)
- Tamaño de ROM (0x0148): bancos = 2^(código + 1)
- Tamaño de RAM (0x0149): 0 -> sin RAM, 2 -> 8KB, 3 -> 32KB, 4 -> 128KB, 5 -> 64KB

Mappers soportados:
- ROM ONLY (0x00): 32KB mapeados directamente en 0x0000 - 0x7FFF.
- MBC1 (0x01 - 0x03): registros de control escritos en el área de ROM:
  - 0x0000 - 0x1FFF: RAM Enable ((valor & 0x0F) == 0x0A)
  - 0x2000 - 0x3FFF: Banco ROM (5 bits bajos, 0 se convierte en 1)
  - 0x4000 - 0x5FFF: Registro secundario de 2 bits (banco RAM o bits altos de ROM)
  - 0x6000 - 0x7FFF: Banking Mode (1 bit)

Fuente: Pan Docs - Cartridge Header, MBC1
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import CartridgeUnsupported

logger = logging.getLogger(__name__)

# Direcciones del Header
HEADER_START = 0x0100
HEADER_END = 0x014F
TITLE_START = 0x0134
TITLE_END = 0x0143
CARTRIDGE_TYPE = 0x0147
ROM_SIZE = 0x0148
RAM_SIZE = 0x0149

ROM_BANK_SIZE = 0x4000  # 16KB
RAM_BANK_SIZE = 0x2000  # 8KB

# Máximo de bancos direccionables por MBC1 (2MB)
MAX_ROM_BANKS = 128

# Código de cabecera -> bytes de RAM externa
RAM_SIZE_BYTES: dict[int, int] = {
    0x00: 0,
    0x02: 8 * 1024,
    0x03: 32 * 1024,
    0x04: 128 * 1024,
    0x05: 64 * 1024,
}

CARTRIDGE_ROM_ONLY = 0x00
CARTRIDGE_MBC1_TYPES = (0x01, 0x02, 0x03)

# Umbrales de "cartucho grande" para MBC1
LARGE_ROM_BYTES = 512 * 1024
LARGE_RAM_BYTES = 8 * 1024


def parse_header(rom: bytes | bytearray) -> dict[str, str | int]:
    """
    Parsea el Header de la ROM (0x0100 - 0x014F).

    Returns:
        Diccionario con 'title', 'cartridge_type' (hex string), 'rom_size' (KB)
        y 'ram_size' (KB)
    """
    title_bytes = bytes(rom[TITLE_START : TITLE_END + 1])

    # El título termina en 0x00 o 0x80, o usa los 16 bytes
    title_end = len(title_bytes)
    for i, byte in enumerate(title_bytes):
        if byte == 0x00 or byte == 0x80:
            title_end = i
            break

    title = title_bytes[:title_end].decode("ascii", errors="replace").strip()
    if not title or not title.isprintable():
        title = "UNKNOWN"

    rom_size_code = rom[ROM_SIZE]
    ram_size_code = rom[RAM_SIZE]

    return {
        "title": title,
        "cartridge_type": f"0x{rom[CARTRIDGE_TYPE]:02X}",
        "rom_size": 32 * (2 ** rom_size_code) if rom_size_code <= 0x08 else 0,
        "ram_size": RAM_SIZE_BYTES.get(ram_size_code, 0) // 1024,
    }


class Cartridge:
    """
    Base común de los cartuchos.

    Mantiene la ROM (solo lectura) y la RAM externa (puede estar vacía) y
    expone la interfaz que usa la MMU: `read_byte`, `write_byte` y
    `read_slice` (para DMA).
    """

    def __init__(self, rom: bytes | bytearray, ram_size: int = 0) -> None:
        self._rom = bytes(rom)
        self.ram = bytearray(ram_size)
        self._header_info = parse_header(self._rom)

    @classmethod
    def from_path(cls, rom_path: str | Path) -> Cartridge:
        """
        Carga un archivo ROM y construye el cartucho adecuado según su cabecera.

        Raises:
            FileNotFoundError: Si el archivo no existe
            ValueError: Si el archivo es demasiado pequeño para contener el Header
            CartridgeUnsupported: Si el mapper o los tamaños no están soportados
        """
        path = Path(rom_path)
        if not path.exists():
            raise FileNotFoundError(f"ROM no encontrada: {rom_path}")

        with open(path, "rb") as f:
            data = f.read()

        cartridge = load_cartridge(data)
        logger.info(f"Cartucho cargado: {path.name} ({len(data)} bytes)")
        return cartridge

    def read_byte(self, addr: int) -> int:
        raise NotImplementedError

    def write_byte(self, addr: int, value: int) -> None:
        raise NotImplementedError

    def read_slice(self, prefix: int, size: int = 160) -> bytes:
        """
        Lee `size` bytes consecutivos desde `prefix << 8` aplicando el banking.

        Solo tiene sentido para prefijos dentro del área del cartucho
        (0x00-0x7F para ROM, 0xA0-0xBF para RAM externa).
        """
        base = (prefix & 0xFF) << 8
        return bytes(self.read_byte((base + i) & 0xFFFF) for i in range(size))

    def get_header_info(self) -> dict[str, str | int]:
        return self._header_info.copy()

    def get_rom_size(self) -> int:
        return len(self._rom)


class RomOnlyCartridge(Cartridge):
    """Cartucho sin mapper: 32KB de ROM en 0x0000 - 0x7FFF y sin RAM externa."""

    def read_byte(self, addr: int) -> int:
        if addr < 0x8000:
            if addr >= len(self._rom):
                return 0xFF
            return self._rom[addr]
        # Sin RAM externa (0xA000 - 0xBFFF)
        return 0xFF

    def write_byte(self, addr: int, value: int) -> None:
        # La ROM es de solo lectura y no hay registros de control
        logger.debug(f"ROM ONLY: escritura ignorada en 0x{addr:04X} = 0x{value:02X}")


class MBC1Cartridge(Cartridge):
    """
    Cartucho con MBC1 (Memory Bank Controller 1).

    Resolución de bancos:
    - 0x0000 - 0x3FFF: banco 0, o `secondary << 5` si banking mode = 1 y ROM grande
    - 0x4000 - 0x7FFF: `(secondary << 5) | primary` si banking mode = 0 o ROM grande,
      si no `primary`
    - 0xA000 - 0xBFFF: banco RAM `secondary` si banking mode = 1 y RAM grande, si no 0
    """

    def __init__(self, rom: bytes | bytearray, rom_banks: int, ram_size: int) -> None:
        super().__init__(rom, ram_size)
        self.rom_banks = rom_banks
        # Bancos realmente presentes en la imagen (nunca indexar fuera de la ROM)
        self._available_banks = max(1, len(self._rom) // ROM_BANK_SIZE)

        self.ram_enabled: bool = False
        self.rom_bank: int = 1
        self.secondary: int = 0
        self.banking_mode: int = 0

        # Bits del registro de banco ROM: min(5, log2(bancos))
        self._bank_bits = min(5, max(rom_banks.bit_length() - 1, 1))
        self.large_rom = rom_banks * ROM_BANK_SIZE > LARGE_ROM_BYTES
        self.large_ram = ram_size > LARGE_RAM_BYTES

    def _rom_offset(self, bank: int, addr: int) -> int:
        return (bank % self._available_banks) * ROM_BANK_SIZE + addr

    def _ram_offset(self, addr: int) -> int:
        bank = self.secondary if (self.banking_mode == 1 and self.large_ram) else 0
        return bank * RAM_BANK_SIZE + (addr - 0xA000)

    def read_byte(self, addr: int) -> int:
        if addr < 0x4000:
            bank = 0
            if self.banking_mode == 1 and self.large_rom:
                bank = self.secondary << 5
            return self._rom[self._rom_offset(bank, addr)]

        if addr < 0x8000:
            if self.banking_mode == 0 or self.large_rom:
                bank = (self.secondary << 5) | self.rom_bank
            else:
                bank = self.rom_bank
            return self._rom[self._rom_offset(bank, addr - 0x4000)]

        if 0xA000 <= addr < 0xC000:
            if not self.ram_enabled or not self.ram:
                return 0xFF
            return self.ram[self._ram_offset(addr) % len(self.ram)]

        return 0xFF

    def write_byte(self, addr: int, value: int) -> None:
        value &= 0xFF

        if addr < 0x2000:
            self.ram_enabled = (value & 0x0F) == 0x0A
        elif addr < 0x4000:
            bank = value & ((1 << self._bank_bits) - 1)
            # Quirk de MBC1: pedir el banco 0 selecciona el banco 1
            if bank == 0:
                bank = 1
            self.rom_bank = bank
        elif addr < 0x6000:
            self.secondary = value & 0x03
        elif addr < 0x8000:
            self.banking_mode = value & 0x01
        elif 0xA000 <= addr < 0xC000:
            if self.ram_enabled and self.ram:
                self.ram[self._ram_offset(addr) % len(self.ram)] = value


def load_cartridge(rom: bytes | bytearray) -> Cartridge:
    """
    Construye el cartucho que corresponde al byte 0x0147 de la ROM.

    Raises:
        ValueError: Si la ROM es más pequeña que el Header
        CartridgeUnsupported: Mapper, tamaño de ROM o tamaño de RAM desconocidos
    """
    if len(rom) < HEADER_END + 1:
        raise ValueError(
            f"ROM demasiado pequeña: {len(rom)} bytes "
            f"(mínimo esperado: {HEADER_END + 1} bytes)"
        )

    cartridge_type = rom[CARTRIDGE_TYPE]
    rom_size_code = rom[ROM_SIZE]
    ram_size_code = rom[RAM_SIZE]

    if cartridge_type != CARTRIDGE_ROM_ONLY and cartridge_type not in CARTRIDGE_MBC1_TYPES:
        raise CartridgeUnsupported("cartridge_type", cartridge_type)

    rom_banks = 1 << (rom_size_code + 1) if rom_size_code < 0x10 else MAX_ROM_BANKS * 2
    if rom_banks > MAX_ROM_BANKS:
        raise CartridgeUnsupported("rom_size", rom_size_code)

    if ram_size_code not in RAM_SIZE_BYTES:
        raise CartridgeUnsupported("ram_size", ram_size_code)

    if cartridge_type == CARTRIDGE_ROM_ONLY:
        cartridge: Cartridge = RomOnlyCartridge(rom)
    else:
        cartridge = MBC1Cartridge(rom, rom_banks, RAM_SIZE_BYTES[ram_size_code])

    logger.debug(f"Header parseado: {cartridge.get_header_info()}")
    return cartridge
