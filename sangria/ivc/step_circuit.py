"""
IVC 단계 회로 (Step Circuit)
==============================

IVC가 반복 적용하는 함수 F: z_in → z_out 을 회로로 기술한다.
synthesize는 값과 무관하게 항상 같은 게이트 구조를 만들어야 한다
(모든 단계가 같은 회로 위에서 폴딩되기 때문).

예제:
  - CubicStep:      z → z³ + z + 5
  - FibonacciStep:  (a, b) → (b, a + b)
  - AccumulateStep: z → z + w  (w는 단계별 비공개 증인)
"""

from sangria.circuit import CircuitBuilder
from sangria.errors import ConfigurationError


class StepCircuit:
    """단계 함수 인터페이스.

    속성:
        arity: 상태 z의 원소 수
    """

    arity = 1

    def synthesize(self, builder, z_in, witness=None):
        """z_in 셀들로부터 z_out 셀 리스트를 만든다."""
        raise NotImplementedError

    def output(self, field, z_in, witness=None):
        """회로 밖에서 F(z_in)을 계산한다."""
        if len(z_in) != self.arity:
            raise ConfigurationError(f"상태 길이 {len(z_in)} != arity {self.arity}")
        builder = CircuitBuilder(field)
        cells = [builder.variable(v) for v in z_in]
        return [builder.value(c) for c in self.synthesize(builder, cells, witness)]

    def __repr__(self):
        return f"{type(self).__name__}(arity={self.arity})"


class CubicStep(StepCircuit):
    """z → z³ + z + 5.

    | 게이트 | 유형  | a   | b | c        |
    |--------|-------|-----|---|----------|
    | 0      | mul   | z   | z | z²       |
    | 1      | mul   | z²  | z | z³       |
    | 2      | add   | z³  | z | z³ + z   |
    | 3      | add+c | z³+z| 0 | z³+z+5   |
    """

    arity = 1

    def synthesize(self, builder, z_in, witness=None):
        (z,) = z_in
        z2 = builder.mul(z, z)
        z3 = builder.mul(z2, z)
        return [builder.add_constant(builder.add(z3, z), 5)]


class FibonacciStep(StepCircuit):
    """(a, b) → (b, a + b)."""

    arity = 2

    def synthesize(self, builder, z_in, witness=None):
        a, b = z_in
        return [b, builder.add(a, b)]


class AccumulateStep(StepCircuit):
    """z → z + w. 증인 w가 없으면 0."""

    arity = 1

    def synthesize(self, builder, z_in, witness=None):
        (z,) = z_in
        w = builder.variable(0 if witness is None else witness)
        return [builder.add(z, w)]
