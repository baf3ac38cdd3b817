"""
Tablas de ciclos del SM83 (en T-Cycles).

OPCODE_T_CYCLES da el coste de cada opcode principal. Para los saltos
condicionales es el coste "no tomado"; BRANCH_TAKEN_T_CYCLES da el coste cuando
la condición se cumple:
- JR cc: 12 / 8
- JP cc: 16 / 12
- CALL cc: 24 / 12
- RET cc: 20 / 8

Las entradas de opcodes ilegales y del prefijo 0xCB valen 0 (el prefijo
calcula su propio coste en `cb_t_cycles`).

Fuente: Pan Docs - CPU Instruction Set, gbdev opcode table
"""

from __future__ import annotations

# fmt: off
OPCODE_T_CYCLES: tuple[int, ...] = (
    #  0   1   2   3   4   5   6   7   8   9   A   B   C   D   E   F
       4, 12,  8,  8,  4,  4,  8,  4, 20,  8,  8,  8,  4,  4,  8,  4,  # 0x
       4, 12,  8,  8,  4,  4,  8,  4, 12,  8,  8,  8,  4,  4,  8,  4,  # 1x
       8, 12,  8,  8,  4,  4,  8,  4,  8,  8,  8,  8,  4,  4,  8,  4,  # 2x
       8, 12,  8,  8, 12, 12, 12,  4,  8,  8,  8,  8,  4,  4,  8,  4,  # 3x
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # 4x
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # 5x
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # 6x
       8,  8,  8,  8,  8,  8,  4,  8,  4,  4,  4,  4,  4,  4,  8,  4,  # 7x
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # 8x
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # 9x
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # Ax
       4,  4,  4,  4,  4,  4,  8,  4,  4,  4,  4,  4,  4,  4,  8,  4,  # Bx
       8, 12, 12, 16, 12, 16,  8, 16,  8, 16, 12,  0, 12, 24,  8, 16,  # Cx
       8, 12, 12,  0, 12, 16,  8, 16,  8, 16, 12,  0, 12,  0,  8, 16,  # Dx
      12, 12,  8,  0,  0, 16,  8, 16, 16,  4, 16,  0,  0,  0,  8, 16,  # Ex
      12, 12,  8,  4,  0, 16,  8, 16, 12,  8, 16,  4,  0,  0,  8, 16,  # Fx
)
# fmt: on

BRANCH_TAKEN_T_CYCLES: dict[int, int] = {
    # JR cc, e
    0x20: 12, 0x28: 12, 0x30: 12, 0x38: 12,
    # JP cc, nn
    0xC2: 16, 0xCA: 16, 0xD2: 16, 0xDA: 16,
    # CALL cc, nn
    0xC4: 24, 0xCC: 24, 0xD4: 24, 0xDC: 24,
    # RET cc
    0xC0: 20, 0xC8: 20, 0xD0: 20, 0xD8: 20,
}

# Opcodes sin instrucción definida en el SM83
ILLEGAL_OPCODES = frozenset(
    (0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD)
)

# Coste de despachar una interrupción
INTERRUPT_T_CYCLES = 20

# Coste de un paso con la CPU en HALT
HALT_T_CYCLES = 4


def cb_t_cycles(cb_opcode: int) -> int:
    """
    Coste de una instrucción con prefijo 0xCB (incluye el prefijo).

    8 para registros, 16 con operando (HL), 12 para BIT b,(HL).
    """
    if (cb_opcode & 0x07) != 6:
        return 8
    if 0x40 <= cb_opcode <= 0x7F:
        return 12
    return 16
