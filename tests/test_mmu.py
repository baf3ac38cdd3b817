"""
Tests para la MMU (Memory Management Unit)

Valida el enrutado del mapa de memoria, el orden Little-Endian, la DMA de
OAM y los registros I/O.

Fuente: Pan Docs - Memory Map, I/O Ports, OAM DMA Transfer
"""

import pytest

from dmgboy.apu.apu import APU
from dmgboy.cpu.core import CPU
from dmgboy.gpu.ppu import PPU
from dmgboy.io.timer import Timer
from dmgboy.memory.cartridge import load_cartridge
from dmgboy.memory.mmu import IO_DIV, IO_DMA, IO_IE, IO_IF, IO_P1, MMU
from tests.helpers_rom import build_rom


def make_mmu(cartridge=None) -> MMU:
    mmu = MMU(cartridge)
    mmu.set_ppu(PPU(mmu))
    return mmu


class TestMMURouting:
    """Tests del enrutado por regiones"""

    def test_wram_and_echo(self) -> None:
        """Test: WRAM se lee igual a través de su espejo (Echo RAM)."""
        mmu = make_mmu()
        for addr, value in ((0xC000, 0x12), (0xD123, 0x34), (0xDDFF, 0x56)):
            mmu.write_byte(addr, value)
            assert mmu.read_byte(addr) == value
            assert mmu.read_byte(addr + 0x2000) == value, "Echo RAM debe reflejar WRAM"

    def test_echo_write_reaches_wram(self) -> None:
        """Test: Escribir en Echo RAM modifica la WRAM."""
        mmu = make_mmu()
        mmu.write_byte(0xE010, 0xAB)
        assert mmu.read_byte(0xC010) == 0xAB

    def test_hram(self) -> None:
        """Test: HRAM (0xFF80-0xFFFE) es RAM normal."""
        mmu = make_mmu()
        mmu.write_byte(0xFF80, 0x01)
        mmu.write_byte(0xFFFE, 0x02)
        assert mmu.read_byte(0xFF80) == 0x01
        assert mmu.read_byte(0xFFFE) == 0x02

    def test_vram_and_oam_belong_to_ppu(self) -> None:
        """Test: VRAM y OAM se guardan en los buffers de la PPU."""
        mmu = MMU(None)
        ppu = PPU(mmu)
        mmu.set_ppu(ppu)
        mmu.write_byte(0x8000, 0x3C)
        mmu.write_byte(0x9FFF, 0x7E)
        mmu.write_byte(0xFE00, 0x10)
        mmu.write_byte(0xFE9F, 0x20)
        assert ppu.vram[0] == 0x3C
        assert ppu.vram[0x1FFF] == 0x7E
        assert ppu.oam[0] == 0x10
        assert ppu.oam[0x9F] == 0x20

    def test_vram_without_ppu(self) -> None:
        """Test: Acceder a VRAM sin PPU conectada es un error de programación."""
        mmu = MMU(None)
        with pytest.raises(RuntimeError):
            mmu.read_byte(0x8000)

    def test_unusable_area(self) -> None:
        """Test: 0xFEA0-0xFEFF devuelve 0xFF en modos 2/3 y 0x00 en el resto; no se escribe."""
        mmu = MMU(None)
        ppu = PPU(mmu)
        mmu.set_ppu(ppu)

        mmu.write_byte(0xFEA0, 0x55)
        assert mmu.read_byte(0xFEA0) == 0x00
        ppu.mode = 2
        assert mmu.read_byte(0xFEFF) == 0xFF
        ppu.mode = 3
        assert mmu.read_byte(0xFEC0) == 0xFF
        ppu.mode = 1
        assert mmu.read_byte(0xFEC0) == 0x00
        assert bytes(ppu.oam) == bytes(0xA0), "La zona no usable no toca la OAM"

    def test_cartridge_routing(self) -> None:
        """Test: ROM y RAM externa se enrutan al cartucho (escrituras = comandos MBC)."""
        mmu = make_mmu(load_cartridge(build_rom(0x01, 0x01)))
        assert mmu.read_byte(0x4000) == 1
        mmu.write_byte(0x2000, 0x03)
        assert mmu.read_byte(0x4000) == 3

    def test_no_cartridge_reads_ff(self) -> None:
        """Test: Sin cartucho la ROM se lee como 0xFF."""
        mmu = make_mmu()
        assert mmu.read_byte(0x0100) == 0xFF
        assert mmu.read_byte(0xA000) == 0xFF


class TestMMUWords:
    """Tests de acceso de 16 bits"""

    def test_little_endian(self) -> None:
        """Test: write_word guarda LSB primero."""
        mmu = make_mmu()
        mmu.write_word(0xC000, 0x1234)
        assert mmu.read_byte(0xC000) == 0x34
        assert mmu.read_byte(0xC001) == 0x12
        assert mmu.read_word(0xC000) == 0x1234

    def test_read_word_wraps(self) -> None:
        """Test: read_word(0xFFFF) toma el MSB de 0x0000."""
        mmu = make_mmu(load_cartridge(build_rom()))
        mmu.write_byte(IO_IE, 0x1F)
        # rom[0x0000] vale 0
        assert mmu.read_word(0xFFFF) == 0x001F


class TestMMUIO:
    """Tests de registros I/O"""

    def test_interrupt_latches_without_cpu(self) -> None:
        """Test: IE/IF se guardan en latches y pasan a la CPU al conectarla."""
        mmu = make_mmu()
        mmu.write_byte(IO_IE, 0x05)
        mmu.write_byte(IO_IF, 0x01)
        mmu.request_interrupt(0x04)
        assert mmu.read_byte(IO_IF) == 0xE5

        cpu = CPU(mmu)
        mmu.set_cpu(cpu)
        assert cpu.interrupt_enable == 0x05
        assert cpu.interrupt_flag == 0x05

    def test_if_upper_bits_read_as_one(self) -> None:
        """Test: IF se lee con los bits 5-7 a 1."""
        mmu = make_mmu()
        cpu = CPU(mmu)
        mmu.set_cpu(cpu)
        mmu.write_byte(IO_IF, 0x00)
        assert mmu.read_byte(IO_IF) == 0xE0
        cpu.request_interrupt(0x02)
        assert mmu.read_byte(IO_IF) == 0xE2

    def test_unmapped_io_reads_ff(self) -> None:
        """Test: Serie y registros no mapeados se leen como 0xFF."""
        mmu = make_mmu()
        for addr in (0xFF01, 0xFF02, 0xFF03, 0xFF08, 0xFF27, 0xFF4C, 0xFF7F):
            mmu.write_byte(addr, 0x00)
            assert mmu.read_byte(addr) == 0xFF, f"0x{addr:04X} debe leerse como 0xFF"

    def test_p1_without_joypad(self) -> None:
        """Test: Sin Joypad conectado P1 se lee como 0xFF."""
        assert make_mmu().read_byte(IO_P1) == 0xFF

    def test_timer_routing(self) -> None:
        """Test: DIV se enruta al Timer y escribir lo pone a 0."""
        mmu = make_mmu()
        timer = Timer()
        timer.set_mmu(mmu)
        mmu.set_timer(timer)
        timer.tick(256 * 5)
        assert mmu.read_byte(IO_DIV) == 5
        mmu.write_byte(IO_DIV, 0x77)
        assert mmu.read_byte(IO_DIV) == 0

    def test_apu_routing(self) -> None:
        """Test: FF10-FF3F se enrutan al APU."""
        mmu = make_mmu()
        apu = APU()
        mmu.set_apu(apu)
        mmu.write_byte(0xFF26, 0x80)
        mmu.write_byte(0xFF24, 0x77)
        mmu.write_byte(0xFF30, 0xA5)
        assert apu.enabled is True
        assert mmu.read_byte(0xFF24) == 0x77
        assert mmu.read_byte(0xFF30) == 0xA5
        assert mmu.read_byte(0xFF26) & 0x80


class TestOAMDMA:
    """Tests de la DMA de OAM (0xFF46)"""

    def test_dma_from_wram(self) -> None:
        """Test: Escribir P en 0xFF46 copia 160 bytes desde P << 8 a OAM."""
        mmu = MMU(None)
        ppu = PPU(mmu)
        mmu.set_ppu(ppu)
        for i in range(160):
            mmu.write_byte(0xC100 + i, (i * 3) & 0xFF)

        mmu.write_byte(IO_DMA, 0xC1)

        assert bytes(ppu.oam) == bytes((i * 3) & 0xFF for i in range(160))
        assert mmu.read_byte(IO_DMA) == 0xC1

    def test_dma_from_banked_rom(self) -> None:
        """Test: La DMA desde ROM respeta el banco actual del MBC1."""
        rom = build_rom(0x01, 0x01)
        for i in range(160):
            rom[3 * 0x4000 + 0x0200 + i] = 0xFF - i
        mmu = make_mmu(load_cartridge(rom))
        mmu.write_byte(0x2000, 0x03)

        mmu.write_byte(IO_DMA, 0x42)

        for i in range(160):
            assert mmu.read_byte(0xFE00 + i) == 0xFF - i

    def test_dma_snapshot(self) -> None:
        """Test: La OAM guarda los valores del momento de la escritura."""
        mmu = make_mmu()
        mmu.write_byte(0xC000, 0x11)
        mmu.write_byte(IO_DMA, 0xC0)
        mmu.write_byte(0xC000, 0x22)
        assert mmu.read_byte(0xFE00) == 0x11
