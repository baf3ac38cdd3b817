"""
Tests del desensamblador SM83 usado por las trazas

Fuente: Pan Docs - CPU Instruction Set
"""

import pytest

from dmgboy.cpu.cycles import ILLEGAL_OPCODES
from dmgboy.cpu.disassembler import OPCODE_TEMPLATES, cb_mnemonic, disassemble, instruction_length


def reader(program: bytes, base: int = 0xC000):
    """Función de lectura sobre un programa colocado en `base`."""
    def read_byte(addr: int) -> int:
        offset = addr - base
        if 0 <= offset < len(program):
            return program[offset]
        return 0x00
    return read_byte


class TestDisassemble:
    """Tests de disassemble()"""

    @pytest.mark.parametrize(
        "program, text, length",
        [
            (bytes([0x00]), "NOP", 1),
            (bytes([0x76]), "HALT", 1),
            (bytes([0x3E, 0x12]), "LD A,$12", 2),
            (bytes([0x21, 0x34, 0x12]), "LD HL,$1234", 3),
            (bytes([0xC3, 0x50, 0x01]), "JP $0150", 3),
            (bytes([0xCD, 0x00, 0x40]), "CALL $4000", 3),
            (bytes([0xC2, 0x00, 0x02]), "JP NZ,$0200", 3),
            (bytes([0x08, 0x00, 0xD0]), "LD ($D000),SP", 3),
            (bytes([0xE0, 0x44]), "LDH ($FF44),A", 2),
            (bytes([0xF0, 0x00]), "LDH A,($FF00)", 2),
            (bytes([0xE8, 0xFE]), "ADD SP,-2", 2),
            (bytes([0xF8, 0x05]), "LD HL,SP+5", 2),
            (bytes([0xF8, 0xFD]), "LD HL,SP-3", 2),
            (bytes([0x22]), "LD (HL+),A", 1),
            (bytes([0x3A]), "LD A,(HL-)", 1),
            (bytes([0x46]), "LD B,(HL)", 1),
            (bytes([0x8E]), "ADC A,(HL)", 1),
            (bytes([0x97]), "SUB A", 1),
            (bytes([0xFE, 0x90]), "CP $90", 2),
            (bytes([0xF1]), "POP AF", 1),
            (bytes([0xD5]), "PUSH DE", 1),
            (bytes([0xFF]), "RST 38H", 1),
            (bytes([0xD8]), "RET C", 1),
            (bytes([0xE9]), "JP HL", 1),
            (bytes([0xD3]), "ILLEGAL $D3", 1),
        ],
    )
    def test_mnemonics(self, program: bytes, text: str, length: int) -> None:
        """Test: Mnemónico y longitud de instrucciones representativas."""
        assert disassemble(reader(program), 0xC000) == (text, length)

    def test_jr_shows_target(self) -> None:
        """Test: JR muestra la dirección destino (PC + 2 + desplazamiento)."""
        assert disassemble(reader(bytes([0x18, 0xFE])), 0xC000) == ("JR $C000", 2)
        assert disassemble(reader(bytes([0x20, 0x10])), 0xC000) == ("JR NZ,$C012", 2)

    def test_cb_prefix(self) -> None:
        """Test: Las instrucciones CB ocupan 2 bytes."""
        assert disassemble(reader(bytes([0xCB, 0x7C])), 0xC000) == ("BIT 7,H", 2)
        assert disassemble(reader(bytes([0xCB, 0x36])), 0xC000) == ("SWAP (HL)", 2)

    @pytest.mark.parametrize(
        "cb_opcode, text",
        [(0x00, "RLC B"), (0x1F, "RR A"), (0x27, "SLA A"), (0x3E, "SRL (HL)"),
         (0x46, "BIT 0,(HL)"), (0x87, "RES 0,A"), (0xFF, "SET 7,A")],
    )
    def test_cb_mnemonic(self, cb_opcode: int, text: str) -> None:
        """Test: Grupos de desplazamiento, BIT, RES y SET."""
        assert cb_mnemonic(cb_opcode) == text


class TestTemplates:
    """Tests de la tabla de plantillas"""

    def test_only_illegal_opcodes_unnamed(self) -> None:
        """Test: Solo los 11 opcodes ilegales carecen de mnemónico."""
        unnamed = {op for op, text in enumerate(OPCODE_TEMPLATES) if text == "ILLEGAL"}
        assert unnamed == set(ILLEGAL_OPCODES)

    def test_lengths(self) -> None:
        """Test: Todas las instrucciones ocupan entre 1 y 3 bytes."""
        assert instruction_length(0x00) == 1
        assert instruction_length(0xCB) == 2
        assert instruction_length(0xFA) == 3
        assert {instruction_length(op) for op in range(256)} == {1, 2, 3}
