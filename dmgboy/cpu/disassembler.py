"""
Desensamblador SM83 para trazas de depuración.

Cada opcode tiene una plantilla de mnemónico con marcadores de operando que
se sustituyen por los bytes que siguen al opcode:

- d8 / d16: inmediato de 8 / 16 bits
- a8: dirección 0xFF00 + n (LDH)
- a16: dirección absoluta
- r8: desplazamiento con signo de JR (se muestra la dirección destino)
- e8: desplazamiento con signo de ADD SP / LD HL,SP+e8

Fuente: Pan Docs - CPU Instruction Set
"""

from __future__ import annotations

import re
from typing import Callable

from .cycles import ILLEGAL_OPCODES

R8 = ("B", "C", "D", "E", "H", "L", "(HL)", "A")
R16 = ("BC", "DE", "HL", "SP")
R16_STACK = ("BC", "DE", "HL", "AF")
R16_INDIRECT = ("(BC)", "(DE)", "(HL+)", "(HL-)")
CONDITIONS = ("NZ", "Z", "NC", "C")
ALU_OPS = ("ADD A,", "ADC A,", "SUB ", "SBC A,", "AND ", "XOR ", "OR ", "CP ")
CB_SHIFTS = ("RLC", "RRC", "RL", "RR", "SLA", "SRA", "SWAP", "SRL")

OPERAND_SIZES = {"d8": 1, "a8": 1, "r8": 1, "e8": 1, "d16": 2, "a16": 2}
_OPERAND_RE = re.compile(r"\b(d16|a16|d8|a8|r8|e8)\b")


def _build_templates() -> list[str]:
    table = ["ILLEGAL"] * 256

    # Bloque 0x00-0x3F
    table[0x00] = "NOP"
    table[0x08] = "LD (a16),SP"
    table[0x10] = "STOP"
    table[0x18] = "JR r8"
    for i, cond in enumerate(CONDITIONS):
        table[0x20 + i * 8] = f"JR {cond},r8"
    for i in range(4):
        table[0x01 + i * 16] = f"LD {R16[i]},d16"
        table[0x09 + i * 16] = f"ADD HL,{R16[i]}"
        table[0x02 + i * 16] = f"LD {R16_INDIRECT[i]},A"
        table[0x0A + i * 16] = f"LD A,{R16_INDIRECT[i]}"
        table[0x03 + i * 16] = f"INC {R16[i]}"
        table[0x0B + i * 16] = f"DEC {R16[i]}"
    for i, reg in enumerate(R8):
        table[0x04 + i * 8] = f"INC {reg}"
        table[0x05 + i * 8] = f"DEC {reg}"
        table[0x06 + i * 8] = f"LD {reg},d8"
    for opcode, name in zip(range(0x07, 0x40, 8), ("RLCA", "RRCA", "RLA", "RRA", "DAA", "CPL", "SCF", "CCF")):
        table[opcode] = name

    # Bloque 0x40-0x7F: LD r,r' (0x76 es HALT)
    for opcode in range(0x40, 0x80):
        table[opcode] = f"LD {R8[(opcode >> 3) & 7]},{R8[opcode & 7]}"
    table[0x76] = "HALT"

    # Bloque 0x80-0xBF: ALU A,r
    for opcode in range(0x80, 0xC0):
        table[opcode] = ALU_OPS[(opcode >> 3) & 7] + R8[opcode & 7]

    # Bloque 0xC0-0xFF
    for i, cond in enumerate(CONDITIONS):
        table[0xC0 + i * 8] = f"RET {cond}"
        table[0xC2 + i * 8] = f"JP {cond},a16"
        table[0xC4 + i * 8] = f"CALL {cond},a16"
    for i, pair in enumerate(R16_STACK):
        table[0xC1 + i * 16] = f"POP {pair}"
        table[0xC5 + i * 16] = f"PUSH {pair}"
    for i, op in enumerate(ALU_OPS):
        table[0xC6 + i * 8] = op + "d8"
        table[0xC7 + i * 8] = f"RST {i * 8:02X}H"
    for opcode, name in (
        (0xC3, "JP a16"),
        (0xC9, "RET"),
        (0xCB, "PREFIX CB"),
        (0xCD, "CALL a16"),
        (0xD9, "RETI"),
        (0xE0, "LDH (a8),A"),
        (0xE2, "LD (C),A"),
        (0xE8, "ADD SP,e8"),
        (0xE9, "JP HL"),
        (0xEA, "LD (a16),A"),
        (0xF0, "LDH A,(a8)"),
        (0xF2, "LD A,(C)"),
        (0xF3, "DI"),
        (0xF8, "LD HL,SP+e8"),
        (0xF9, "LD SP,HL"),
        (0xFA, "LD A,(a16)"),
        (0xFB, "EI"),
    ):
        table[opcode] = name

    for opcode in ILLEGAL_OPCODES:
        table[opcode] = "ILLEGAL"
    return table


OPCODE_TEMPLATES = _build_templates()


def cb_mnemonic(cb_opcode: int) -> str:
    """Mnemónico de una instrucción con prefijo CB."""
    reg = R8[cb_opcode & 7]
    group = cb_opcode >> 6
    if group == 0:
        return f"{CB_SHIFTS[cb_opcode >> 3]} {reg}"
    bit = (cb_opcode >> 3) & 7
    return f"{('BIT', 'RES', 'SET')[group - 1]} {bit},{reg}"


def instruction_length(opcode: int) -> int:
    """Bytes que ocupa la instrucción (opcode incluido)."""
    if opcode == 0xCB:
        return 2
    match = _OPERAND_RE.search(OPCODE_TEMPLATES[opcode])
    return 1 + (OPERAND_SIZES[match.group(1)] if match else 0)


def disassemble(read_byte: Callable[[int], int], addr: int) -> tuple[str, int]:
    """
    Desensambla la instrucción situada en `addr`.

    Args:
        read_byte: Función de lectura del bus (normalmente MMU.read_byte)
        addr: Dirección del opcode

    Returns:
        Tupla (texto, longitud en bytes)
    """
    opcode = read_byte(addr & 0xFFFF)
    if opcode == 0xCB:
        return cb_mnemonic(read_byte((addr + 1) & 0xFFFF)), 2

    template = OPCODE_TEMPLATES[opcode]
    if opcode in ILLEGAL_OPCODES:
        return f"ILLEGAL ${opcode:02X}", 1

    length = instruction_length(opcode)
    if length == 1:
        return template, 1

    low = read_byte((addr + 1) & 0xFFFF)
    high = read_byte((addr + 2) & 0xFFFF) if length == 3 else 0

    def substitute(match: re.Match) -> str:
        kind = match.group(1)
        if kind in ("d16", "a16"):
            return f"${(high << 8) | low:04X}"
        if kind == "a8":
            return f"$FF{low:02X}"
        signed = low - 256 if low >= 0x80 else low
        if kind == "r8":
            return f"${(addr + 2 + signed) & 0xFFFF:04X}"
        if kind == "e8":
            return str(signed)
        return f"${low:02X}"

    return _OPERAND_RE.sub(substitute, template).replace("+-", "-"), length
