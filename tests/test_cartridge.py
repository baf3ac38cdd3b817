"""
Tests para Cartridge: carga de ROM, Header y MBC1

Fuente: Pan Docs - Cartridge Header, MBC1
"""

import pytest

from dmgboy.errors import CartridgeUnsupported
from dmgboy.memory.cartridge import (
    Cartridge,
    MBC1Cartridge,
    RomOnlyCartridge,
    load_cartridge,
)
from tests.helpers_rom import build_rom


class TestCartridgeLoading:
    """Tests de carga y parsing del Header"""

    def test_rom_only_reads_bytes(self) -> None:
        """Test: Un cartucho ROM ONLY mapea los 32KB directamente."""
        rom = build_rom(program=bytes([0xC3, 0x50, 0x01]))
        rom[0x7FFF] = 0x5A
        cartridge = load_cartridge(rom)

        assert isinstance(cartridge, RomOnlyCartridge)
        assert cartridge.read_byte(0x0100) == 0xC3
        assert cartridge.read_byte(0x0102) == 0x01
        assert cartridge.read_byte(0x7FFF) == 0x5A
        assert cartridge.get_rom_size() == 32 * 1024

    def test_rom_only_ignores_writes(self) -> None:
        """Test: La ROM es de solo lectura y no hay RAM externa."""
        cartridge = load_cartridge(build_rom(program=bytes([0x12])))
        cartridge.write_byte(0x0100, 0x99)
        cartridge.write_byte(0xA000, 0x99)
        assert cartridge.read_byte(0x0100) == 0x12, "La ROM no debe cambiar"
        assert cartridge.read_byte(0xA000) == 0xFF, "Sin RAM externa se lee 0xFF"

    def test_header_info(self) -> None:
        """Test: El Header devuelve título, tipo y tamaños en KB."""
        cartridge = load_cartridge(build_rom(0x03, 0x02, 0x03, title=b"POKEMON RED"))
        info = cartridge.get_header_info()
        assert info["title"] == "POKEMON RED"
        assert info["cartridge_type"] == "0x03"
        assert info["rom_size"] == 128
        assert info["ram_size"] == 32

    def test_empty_title_is_unknown(self) -> None:
        """Test: Un título vacío se muestra como UNKNOWN."""
        cartridge = load_cartridge(build_rom(title=b""))
        assert cartridge.get_header_info()["title"] == "UNKNOWN"

    def test_from_path(self, tmp_path) -> None:
        """Test: from_path lee el archivo y elige el mapper."""
        path = tmp_path / "game.gb"
        path.write_bytes(bytes(build_rom(0x01, 0x01)))
        cartridge = Cartridge.from_path(path)
        assert isinstance(cartridge, MBC1Cartridge)
        assert cartridge.rom_banks == 4

    def test_from_path_missing_file(self, tmp_path) -> None:
        """Test: Una ruta inexistente lanza FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            Cartridge.from_path(tmp_path / "no_existe.gb")

    def test_rom_too_small(self) -> None:
        """Test: Una ROM sin Header completo es un ValueError."""
        with pytest.raises(ValueError, match="demasiado pequeña"):
            load_cartridge(bytes(0x100))

    @pytest.mark.parametrize(
        "cartridge_type, rom_size_code, ram_size_code, field, code",
        [
            (0x05, 0x00, 0x00, "cartridge_type", 0x05),  # MBC2
            (0x13, 0x00, 0x00, "cartridge_type", 0x13),  # MBC3
            (0x01, 0x07, 0x00, "rom_size", 0x07),        # 256 bancos
            (0x03, 0x00, 0x01, "ram_size", 0x01),        # código de RAM obsoleto
        ],
    )
    def test_unsupported(self, cartridge_type: int, rom_size_code: int, ram_size_code: int, field: str, code: int) -> None:
        """Test: Mapper, tamaño de ROM o de RAM desconocidos fallan al construir."""
        rom = build_rom(0x00, 0x00, 0x00)
        rom[0x0147] = cartridge_type
        rom[0x0148] = rom_size_code
        rom[0x0149] = ram_size_code
        with pytest.raises(CartridgeUnsupported) as excinfo:
            load_cartridge(rom)
        assert excinfo.value.field == field
        assert excinfo.value.code == code


class TestMBC1:
    """Tests del banking del MBC1"""

    def test_default_bank_is_one(self) -> None:
        """Test: Por defecto 0x4000-0x7FFF apunta al banco 1."""
        cartridge = load_cartridge(build_rom(0x01, 0x01))
        assert cartridge.read_byte(0x4000) == 1

    def test_bank_switch(self) -> None:
        """Test: Escribir en 0x2000-0x3FFF cambia el banco conmutable."""
        cartridge = load_cartridge(build_rom(0x01, 0x01))
        cartridge.write_byte(0x2000, 0x03)
        assert cartridge.read_byte(0x4000) == 3
        cartridge.write_byte(0x3FFF, 0x02)
        assert cartridge.read_byte(0x4000) == 2

    def test_bank_zero_becomes_one(self) -> None:
        """Test: Pedir el banco 0 selecciona el banco 1."""
        cartridge = load_cartridge(build_rom(0x01, 0x01))
        cartridge.write_byte(0x2000, 0x02)
        cartridge.write_byte(0x2000, 0x00)
        assert cartridge.read_byte(0x4000) == 1

    def test_bank_bits_limited_by_rom_size(self) -> None:
        """Test: Con 4 bancos solo cuentan 2 bits del registro."""
        cartridge = load_cartridge(build_rom(0x01, 0x01))
        cartridge.write_byte(0x2000, 0x06)
        assert cartridge.rom_bank == 0x02
        assert cartridge.read_byte(0x4000) == 2

    def test_primary_register_is_five_bits(self) -> None:
        """Test: Con 64 bancos, 0x2A en el registro primario deja el banco 0x0A."""
        cartridge = load_cartridge(build_rom(0x01, 0x05))
        cartridge.write_byte(0x2000, 0x2A)
        assert cartridge.rom_bank == 0x0A
        assert cartridge.read_byte(0x4000) == 0x0A

    def test_bank_0x2a_with_secondary(self) -> None:
        """Test: ROM de 64 bancos, secundario=1 y 0x2A -> offset 0x2A * 0x4000."""
        rom = build_rom(0x01, 0x05)
        rom[0x2A * 0x4000 + 0x0123] = 0xD7
        cartridge = load_cartridge(rom)
        cartridge.write_byte(0x4000, 0x01)
        cartridge.write_byte(0x2000, 0x2A)
        assert cartridge.read_byte(0x4000) == rom[0x2A * 0x4000]
        assert cartridge.read_byte(0x4123) == 0xD7

    def test_mode1_large_rom_maps_bank0_area(self) -> None:
        """Test: Modo 1 con ROM grande mapea (secundario << 5) en 0x0000-0x3FFF."""
        cartridge = load_cartridge(build_rom(0x01, 0x05))
        cartridge.write_byte(0x4000, 0x01)
        assert cartridge.read_byte(0x0000) == 0x00, "Modo 0: banco 0 fijo"
        cartridge.write_byte(0x6000, 0x01)
        assert cartridge.read_byte(0x0000) == 0x20, "Modo 1: banco 0x20 en el área baja"

    def test_bank_wraps_to_image_size(self) -> None:
        """Test: Un banco mayor que la imagen hace wrap-around sin salirse de la ROM."""
        rom = build_rom(0x01, 0x05)
        # La imagen solo trae 16 bancos aunque la cabecera diga 64
        cartridge = MBC1Cartridge(rom[: 16 * 0x4000], rom_banks=64, ram_size=0)
        cartridge.write_byte(0x2000, 0x13)
        assert cartridge.read_byte(0x4000) == 0x03

    def test_ram_enable(self) -> None:
        """Test: La RAM externa solo responde tras escribir 0x0A en 0x0000-0x1FFF."""
        cartridge = load_cartridge(build_rom(0x03, 0x00, 0x02))
        cartridge.write_byte(0xA000, 0x42)
        assert cartridge.read_byte(0xA000) == 0xFF, "RAM deshabilitada se lee 0xFF"

        cartridge.write_byte(0x0000, 0x0A)
        cartridge.write_byte(0xA000, 0x42)
        assert cartridge.read_byte(0xA000) == 0x42

        cartridge.write_byte(0x1FFF, 0x00)
        assert cartridge.read_byte(0xA000) == 0xFF
        assert cartridge.ram[0] == 0x42, "Desactivar no borra la RAM"

    def test_ram_banking_mode1(self) -> None:
        """Test: Con 32KB de RAM y modo 1 el secundario selecciona el banco de RAM."""
        cartridge = load_cartridge(build_rom(0x03, 0x00, 0x03))
        cartridge.write_byte(0x0000, 0x0A)
        cartridge.write_byte(0xA000, 0x11)

        cartridge.write_byte(0x6000, 0x01)
        cartridge.write_byte(0x4000, 0x02)
        assert cartridge.read_byte(0xA000) == 0x00, "Banco 2 aún vacío"
        cartridge.write_byte(0xA000, 0x22)
        assert cartridge.ram[2 * 0x2000] == 0x22

        cartridge.write_byte(0x6000, 0x00)
        assert cartridge.read_byte(0xA000) == 0x11, "Modo 0 siempre usa el banco 0"

    def test_read_slice_uses_banking(self) -> None:
        """Test: read_slice aplica el banco actual (usado por la DMA)."""
        rom = build_rom(0x01, 0x01)
        for i in range(160):
            rom[2 * 0x4000 + 0x100 + i] = i
        cartridge = load_cartridge(rom)
        cartridge.write_byte(0x2000, 0x02)
        assert cartridge.read_slice(0x41) == bytes(range(160))
