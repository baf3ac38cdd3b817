"""
TickCounter - Acumulador de T-Cycles con periodo

Pieza básica que usan el APU (frecuencias, envolventes, sweep, longitud,
reloj de muestreo). Acumula T-Cycles y avisa cuando se cruza el periodo.

Un contador con periodo P dispara exactamente floor(t / P) veces tras t
T-Cycles, sin importar cómo se troceen las llamadas.
"""

from __future__ import annotations


class TickCounter:
    """
    Contador con periodo (target) y acumulado (current).

    `advance(n)` dispara como mucho un flanco por llamada. Cuando `n` puede
    superar el periodo (ruido a alta frecuencia, updates largos) se usa
    `advance_all(n)`, que devuelve cuántos flancos se cruzaron.
    """

    __slots__ = ("current", "target")

    def __init__(self, target: int, current: int = 0) -> None:
        if target <= 0:
            raise ValueError(f"El periodo debe ser positivo, no {target}")
        self.target = target
        self.current = current

    def advance(self, n: int) -> bool:
        """
        Suma n T-Cycles. Si se alcanza el periodo, resta un periodo y devuelve True.

        Args:
            n: T-Cycles transcurridos

        Returns:
            True si se cruzó un flanco en esta llamada
        """
        self.current += n
        if self.current >= self.target:
            self.current -= self.target
            return True
        return False

    def advance_all(self, n: int) -> int:
        """
        Suma n T-Cycles y consume todos los flancos cruzados.

        Returns:
            Número de flancos (0 si no se alcanzó el periodo)
        """
        self.current += n
        if self.current < self.target:
            return 0
        edges, self.current = divmod(self.current, self.target)
        return edges

    def rearm(self, target: int) -> None:
        """Cambia el periodo conservando el acumulado."""
        if target <= 0:
            raise ValueError(f"El periodo debe ser positivo, no {target}")
        self.target = target

    def reset(self) -> None:
        """Vuelve a empezar el periodo actual (trigger de canal)."""
        self.current = 0

    def __repr__(self) -> str:
        return f"TickCounter(target={self.target}, current={self.current})"
