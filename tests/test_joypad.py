"""
Tests para el Joypad (registro P1, 0xFF00)

Fuente: Pan Docs - Joypad Input
"""

from dmgboy.cpu.core import CPU
from dmgboy.gpu.ppu import PPU
from dmgboy.io.joypad import ACT_B, ACT_START, DIR_DOWN, DIR_RIGHT, Joypad
from dmgboy.memory.mmu import IO_P1, MMU


def make_joypad() -> tuple[MMU, CPU, Joypad]:
    mmu = MMU(None)
    mmu.set_ppu(PPU(mmu))
    cpu = CPU(mmu)
    mmu.set_cpu(cpu)
    joypad = Joypad(mmu)
    mmu.set_joypad(joypad)
    return mmu, cpu, joypad


class TestJoypad:
    """Tests del Joypad"""

    def test_no_selection_reads_ones(self) -> None:
        """Test: Sin grupo seleccionado el nibble bajo es 0x0F."""
        mmu, _, joypad = make_joypad()
        joypad.set_input(0x0F, 0x0F)
        mmu.write_byte(IO_P1, 0x30)
        assert mmu.read_byte(IO_P1) == 0xFF

    def test_directions_selected(self) -> None:
        """Test: Right y B pulsados; 0x20 (bit 4 = 0) selecciona direcciones -> 0b1110."""
        mmu, _, joypad = make_joypad()
        joypad.set_input(DIR_RIGHT, ACT_B)
        mmu.write_byte(IO_P1, 0x20)
        value = mmu.read_byte(IO_P1)
        assert value & 0x0F == 0b1110
        assert value == 0xC0 | 0x20 | 0b1110

    def test_actions_selected(self) -> None:
        """Test: 0x10 (bit 5 = 0) selecciona acciones y se ve B pulsado."""
        mmu, _, joypad = make_joypad()
        joypad.set_input(DIR_RIGHT, ACT_B)
        mmu.write_byte(IO_P1, 0x10)
        assert mmu.read_byte(IO_P1) & 0x0F == 0b1101

    def test_both_selected_and(self) -> None:
        """Test: Con ambos grupos seleccionados los nibbles se combinan con AND."""
        mmu, _, joypad = make_joypad()
        joypad.set_input(DIR_RIGHT, ACT_B)
        mmu.write_byte(IO_P1, 0x00)
        assert mmu.read_byte(IO_P1) & 0x0F == 0b1100

    def test_press_in_selected_group_requests_interrupt(self) -> None:
        """Test: Pulsar un botón de un grupo seleccionado activa el bit 4 de IF."""
        mmu, cpu, joypad = make_joypad()
        mmu.write_byte(IO_P1, 0x10)  # acciones
        joypad.set_input(0, ACT_START)
        assert cpu.interrupt_flag & 0x10

    def test_press_in_unselected_group_no_interrupt(self) -> None:
        """Test: Pulsar un botón de un grupo no seleccionado no interrumpe."""
        mmu, cpu, joypad = make_joypad()
        mmu.write_byte(IO_P1, 0x10)  # acciones
        joypad.set_input(DIR_DOWN, 0)
        assert cpu.interrupt_flag & 0x10 == 0

    def test_holding_button_does_not_repeat_interrupt(self) -> None:
        """Test: Mantener un botón pulsado no vuelve a interrumpir."""
        mmu, cpu, joypad = make_joypad()
        mmu.write_byte(IO_P1, 0x20)
        joypad.set_input(DIR_RIGHT, 0)
        cpu.interrupt_flag = 0
        joypad.set_input(DIR_RIGHT, 0)
        assert cpu.interrupt_flag == 0

    def test_press_release_by_name(self) -> None:
        """Test: press/release/get_state por nombre de botón."""
        _, _, joypad = make_joypad()
        joypad.press("start")
        assert joypad.get_state("start") is True
        joypad.write(0x10)  # acciones
        assert joypad.read_nibble() == 0b0111
        joypad.release("start")
        assert joypad.get_state("start") is False
        assert joypad.read_nibble() == 0x0F

    def test_unknown_button_ignored(self) -> None:
        """Test: Un nombre de botón desconocido se ignora."""
        _, _, joypad = make_joypad()
        joypad.press("turbo")
        assert joypad.get_state("turbo") is False
        assert joypad.read_nibble() == 0x0F
