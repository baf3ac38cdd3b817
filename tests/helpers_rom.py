"""
Helpers para construir imágenes ROM sintéticas en memoria.
"""

from __future__ import annotations

ROM_BANK_SIZE = 0x4000

# Bucle infinito en el punto de entrada: JR -2
IDLE_LOOP = bytes([0x18, 0xFE])


def build_rom(
    cartridge_type: int = 0x00,
    rom_size_code: int = 0x00,
    ram_size_code: int = 0x00,
    title: bytes = b"DMGBOY TEST",
    program: bytes = b"",
    mark_banks: bool = True,
) -> bytearray:
    """
    Construye una imagen ROM.

    Cada banco lleva su número en el primer byte (salvo el banco 0) para
    comprobar el banking. `program` se copia en 0x0100 (punto de entrada).
    """
    banks = 2 ** (rom_size_code + 1)
    rom = bytearray(banks * ROM_BANK_SIZE)
    if mark_banks:
        for bank in range(1, banks):
            rom[bank * ROM_BANK_SIZE] = bank & 0xFF

    for i, byte in enumerate(title[:16]):
        rom[0x0134 + i] = byte
    rom[0x0147] = cartridge_type
    rom[0x0148] = rom_size_code
    rom[0x0149] = ram_size_code

    for i, byte in enumerate(program):
        rom[0x0100 + i] = byte
    return rom
