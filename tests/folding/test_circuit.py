"""
회로 기술, 복사 제약 순열, 관계 모델 테스트.

테스트 대상:
  - Gate, CircuitBuilder, product_rows
  - DisjointSet, build_permutation, copy_constraints_hold
  - FieldMatrix / PLONKCircuit / Relaxed 인스턴스·증인의 접근자와 경계
  - extended_wires, gate_evaluations
"""

import pytest

from sangria.circuit import CircuitBuilder, Gate, product_rows
from sangria.errors import ConfigurationError, IndexOutOfBounds
from sangria.field import FR
from sangria.pedersen import Commitment
from sangria.permutation import (
    DisjointSet,
    build_permutation,
    copy_constraints_hold,
    is_permutation,
)
from sangria.relaxed_plonk import (
    NUM_SELECTORS,
    Q_C,
    Q_M,
    Q_O,
    FieldMatrix,
    PLONKCircuit,
    PLONKInstance,
    PLONKWitness,
    RelaxedPLONKInstance,
    RelaxedPLONKWitness,
    extended_wires,
    gate_evaluations,
)


# ─────────────────────────────────────────────────────────────────────
# 게이트
# ─────────────────────────────────────────────────────────────────────

class TestGate:
    """PLONK 게이트 셀렉터 테스트."""

    def test_multiplication_gate(self, f97):
        gate = Gate(f97, 0, 0, -1, 1, 0)
        assert gate.check(f97(3), f97(4), f97(12))
        assert not gate.check(f97(3), f97(4), f97(13))

    def test_addition_gate(self, f97):
        gate = Gate(f97, 1, 1, -1, 0, 0)
        assert gate.check(f97(50), f97(50), f97(3))

    def test_constant_gate(self, f97):
        """a + 5 = c"""
        gate = Gate(f97, 1, 0, -1, 0, 5)
        assert gate.check(f97(10), f97(0), f97(15))

    def test_selectors_reduced(self, f97):
        assert [int(q) for q in Gate(f97, 0, 0, -1, 1, 0).selectors()] == [0, 0, 96, 1, 0]


# ─────────────────────────────────────────────────────────────────────
# 순열
# ─────────────────────────────────────────────────────────────────────

class TestPermutation:
    """복사 제약 순열 테스트."""

    def test_build_permutation_example(self):
        assert build_permutation(6, [[0, 4], [1, 2, 5]]) == [4, 2, 5, 3, 0, 1]

    def test_identity_without_classes(self):
        assert build_permutation(4, []) == [0, 1, 2, 3]

    def test_result_is_permutation(self):
        sigma = build_permutation(9, [[8, 0, 3], [1, 7]])
        assert is_permutation(sigma)
        assert not is_permutation([0, 0, 1])

    def test_out_of_range_position(self):
        with pytest.raises(ConfigurationError):
            build_permutation(3, [[0, 3]])

    def test_duplicate_position(self):
        with pytest.raises(ConfigurationError):
            build_permutation(4, [[0, 1], [1, 2]])

    def test_copy_constraints(self):
        sigma = build_permutation(6, [[0, 4]])
        assert copy_constraints_hold(sigma, [7, 1], [2, 3], [7, 5])
        assert not copy_constraints_hold(sigma, [7, 1], [2, 3], [8, 5])

    def test_copy_constraints_length(self):
        with pytest.raises(ConfigurationError):
            copy_constraints_hold([0, 1, 2], [1], [1], [1, 1])

    def test_disjoint_set(self):
        ds = DisjointSet(5)
        ds.union(3, 1)
        ds.union(4, 3)
        assert ds.find(4) == 1
        assert ds.groups() == [[0], [1, 3, 4], [2]]
        assert ds.add() == 5


# ─────────────────────────────────────────────────────────────────────
# 회로 빌더
# ─────────────────────────────────────────────────────────────────────

class TestCircuitBuilder:
    """셀 기반 회로 빌더 테스트."""

    def test_product_rows_layout(self, f97):
        """n = 4, ℓ = 1 → m = 6, 마지막 곱 c₃ 와 공개 입력 행 a₄ 가 한 사이클."""
        circuit, instance, witness = product_rows(f97, [2, 3, 5, 7], [2, 2, 2, 2])
        assert circuit.number_of_gates == 4
        assert circuit.number_of_public_inputs == 1
        assert circuit.number_of_rows == 6
        assert circuit.unit_row == 5
        assert [int(v) for v in witness.column(2)] == [4, 6, 10, 14]
        assert [int(v) for v in instance.public_inputs()] == [14]

        sigma = circuit.permutation()
        assert sigma[4] == 2 * 6 + 3
        assert sigma[2 * 6 + 3] == 4
        assert sum(1 for p, q in enumerate(sigma) if p != q) == 2

    def test_product_rows_selectors(self, f97):
        circuit, _, _ = product_rows(f97, [2, 3], [4, 5])
        assert [int(v) for v in circuit.selector(Q_M)] == [1, 1, 0, 0]
        assert [int(v) for v in circuit.selector(Q_O)] == [96, 96, 0, 0]

    def test_product_rows_rejects_bad_rows(self, f97):
        with pytest.raises(ConfigurationError):
            product_rows(f97, [1, 2], [3])
        with pytest.raises(ConfigurationError):
            product_rows(f97, [], [])

    def test_cubic_with_constant(self):
        """x³ + x + 5 = 35 (x = 3)"""
        b = CircuitBuilder(FR)
        x = b.variable(3)
        x2 = b.mul(x, x)
        x3 = b.mul(x2, x)
        s = b.add(x3, x)
        out = b.add_constant(s, 5)
        b.assert_equal(out, b.public_input(35))
        circuit, instance, witness = b.build()
        assert circuit.number_of_gates == 4
        a, bb, c = extended_wires(circuit, instance, witness, FR(1))
        assert copy_constraints_hold(circuit.permutation(), a, bb, c)
        assert all(int(e) == 0 for e in gate_evaluations(circuit, a, bb, c, FR(1)))

    def test_inverse_uses_unit_row(self, f97):
        b = CircuitBuilder(f97)
        x = b.variable(5)
        inv = b.inverse(x)
        assert b.value(inv) * f97(5) == f97(1)
        circuit, instance, witness = b.build()
        a, bb, c = extended_wires(circuit, instance, witness, f97(1))
        # 게이트 0의 c 배선이 단위 행의 a 배선과 연결
        sigma = circuit.permutation()
        m = circuit.number_of_rows
        assert sigma[2 * m + 0] == circuit.unit_row
        assert copy_constraints_hold(sigma, a, bb, c)

    def test_inverse_of_zero(self, f97):
        b = CircuitBuilder(f97)
        with pytest.raises(ConfigurationError):
            b.inverse(b.variable(0))

    def test_assert_equal_mismatch(self, f97):
        b = CircuitBuilder(f97)
        with pytest.raises(ConfigurationError):
            b.assert_equal(b.variable(1), b.variable(2))

    def test_copy_constraint_between_gates(self, f97):
        b = CircuitBuilder(f97)
        x, y = b.variable(2), b.variable(3)
        z = b.variable(6)
        row0 = b.add_multiplication_gate(x, y, z)
        w = b.variable(6)
        row1 = b.add_addition_gate(w, b.variable(0), b.variable(6))
        b.add_copy_constraint(row0, 2, row1, 0)
        circuit, instance, witness = b.build()
        m = circuit.number_of_rows
        assert circuit.permutation()[2 * m + row0] == row1

    def test_copy_constraint_bounds(self, f97):
        b = CircuitBuilder(f97)
        b.mul(b.variable(1), b.variable(1))
        with pytest.raises(IndexOutOfBounds):
            b.add_copy_constraint(0, 3, 0, 0)
        with pytest.raises(IndexOutOfBounds):
            b.add_copy_constraint(1, 0, 0, 0)

    def test_unknown_cell(self, f97):
        b = CircuitBuilder(f97)
        with pytest.raises(IndexOutOfBounds):
            b.add_multiplication_gate(0, 1, 2)


# ─────────────────────────────────────────────────────────────────────
# 관계 모델 접근자
# ─────────────────────────────────────────────────────────────────────

class TestAccessors:
    """유효 인덱스는 0 .. 길이-1, 길이 이상은 IndexOutOfBounds."""

    def test_circuit_selector_bounds(self, f97):
        circuit, _, _ = product_rows(f97, [1], [1])
        assert len(circuit.selector(NUM_SELECTORS - 1)) == circuit.number_of_rows
        with pytest.raises(IndexOutOfBounds):
            circuit.selector(NUM_SELECTORS)
        with pytest.raises(IndexOutOfBounds):
            circuit.selector(-1)

    def test_matrix_column_and_row_bounds(self, f97):
        matrix = FieldMatrix(f97, [[1, 2], [3, 4], [5, 6]])
        assert matrix.column(2) == [f97(5), f97(6)]
        assert matrix.row(1) == [f97(2), f97(4), f97(6)]
        with pytest.raises(IndexOutOfBounds):
            matrix.column(3)
        with pytest.raises(IndexOutOfBounds):
            matrix.row(2)
        with pytest.raises(IndexOutOfBounds):
            matrix.column(-1)

    def test_bool_is_not_an_index(self, f97):
        matrix = FieldMatrix(f97, [[1, 2], [3, 4]])
        with pytest.raises(IndexOutOfBounds):
            matrix.column(True)
        circuit, _, _ = product_rows(f97, [1], [1])
        with pytest.raises(IndexOutOfBounds):
            circuit.selector(False)

    def test_accessor_returns_copy(self, f97):
        matrix = FieldMatrix(f97, [[1, 2]])
        matrix.column(0).append(f97(3))
        assert matrix.num_rows == 2

    def test_ragged_matrix(self, f97):
        with pytest.raises(ConfigurationError):
            FieldMatrix(f97, [[1, 2], [3]])

    def test_matrix_shape_mismatch(self, f97):
        with pytest.raises(ConfigurationError):
            FieldMatrix(f97, [[1, 2]]) + FieldMatrix(f97, [[1, 2, 3]])

    def test_matrix_linear_combination(self, f97):
        left = PLONKWitness(f97, [1], [2], [3])
        right = PLONKWitness(f97, [10], [20], [30])
        folded = left + right * f97(2)
        assert isinstance(folded, PLONKWitness)
        assert folded.row(0) == [f97(21), f97(42), f97(63)]

    def test_instance_public_inputs(self, f97):
        x = PLONKInstance(f97, [3, 100])
        assert x.public_inputs() == [f97(3), f97(3)]
        assert (x * f97(2)).public_inputs() == [f97(6), f97(6)]

    def test_single_witness_commitment_bounds(self, f97, schnorr_group):
        zero = Commitment.zero(schnorr_group)
        inst = RelaxedPLONKInstance(PLONKInstance(f97, []), 1, zero, [zero] * 3)
        assert inst.single_witness_commitment(2) == zero
        with pytest.raises(IndexOutOfBounds):
            inst.single_witness_commitment(3)

    def test_instance_needs_three_commitments(self, f97, schnorr_group):
        zero = Commitment.zero(schnorr_group)
        with pytest.raises(ConfigurationError):
            RelaxedPLONKInstance(PLONKInstance(f97, []), 1, zero, [zero] * 2)

    def test_witness_column_with_rand(self, f97):
        wit = RelaxedPLONKWitness.trivial(
            PLONKWitness(f97, [1, 2], [3, 4], [5, 6]), 4, [7, 8, 9], 10
        )
        column, hiding = wit.witness_column_with_rand(1)
        assert column == [f97(3), f97(4)]
        assert hiding == f97(8)
        assert wit.is_trivial()
        assert wit.slack_vector() == [f97(0)] * 4
        with pytest.raises(IndexOutOfBounds):
            wit.witness_column_with_rand(3)

    def test_witness_hiding_count(self, f97):
        with pytest.raises(ConfigurationError):
            RelaxedPLONKWitness(PLONKWitness(f97, [1], [1], [1]), [0], [1, 2], 3)


# ─────────────────────────────────────────────────────────────────────
# 회로 검사와 게이트 평가
# ─────────────────────────────────────────────────────────────────────

class TestPLONKCircuit:
    def _selectors(self, f97, rows):
        return [[f97(0)] * rows for _ in range(NUM_SELECTORS)]

    def test_equality(self, f97):
        c1, _, _ = product_rows(f97, [2, 3], [4, 5])
        c2, _, _ = product_rows(f97, [9, 9], [9, 9])
        c3, _, _ = product_rows(f97, [2, 3, 4], [4, 5, 6])
        assert c1 == c2
        assert c1 != c3

    def test_unequal_selector_lengths(self, f97):
        selectors = self._selectors(f97, 3)
        selectors[Q_C] = [f97(0)] * 4
        with pytest.raises(ConfigurationError):
            PLONKCircuit(f97, selectors, list(range(9)), 0)

    def test_rows_must_hold_public_inputs(self, f97):
        with pytest.raises(ConfigurationError):
            PLONKCircuit(f97, self._selectors(f97, 2), list(range(6)), 2)

    def test_permutation_length(self, f97):
        with pytest.raises(ConfigurationError):
            PLONKCircuit(f97, self._selectors(f97, 2), list(range(5)), 0)

    def test_sigma_must_be_permutation(self, f97):
        """길이가 맞아도 위치가 겹치거나 빠지면 거부한다."""
        with pytest.raises(ConfigurationError):
            PLONKCircuit(f97, self._selectors(f97, 2), [0, 0, 2, 3, 4, 5], 0)
        with pytest.raises(ConfigurationError):
            PLONKCircuit(f97, self._selectors(f97, 2), [1, 2, 3, 4, 5, 6], 0)

    def test_short_selector_list_fails_on_access(self, f97):
        """셀렉터가 4개뿐인 회로는 생성은 되지만 q_C 접근에서 실패한다."""
        circuit = PLONKCircuit(f97, self._selectors(f97, 2)[:4], list(range(6)), 0)
        assert circuit.number_of_selectors == 4
        with pytest.raises(IndexOutOfBounds):
            circuit.selector(Q_C)

    def test_extended_wires_layout(self, f97):
        circuit, instance, witness = product_rows(f97, [2, 3, 5, 7], [2, 2, 2, 2])
        a, b, c = extended_wires(circuit, instance, witness, f97(6))
        assert [int(v) for v in a] == [2, 3, 5, 7, 14, 6]
        assert [int(v) for v in b] == [2, 2, 2, 2, 0, 0]
        assert [int(v) for v in c] == [4, 6, 10, 14, 0, 0]

    def test_extended_wires_shape_mismatch(self, f97):
        circuit, instance, _ = product_rows(f97, [2, 3], [2, 2])
        with pytest.raises(ConfigurationError):
            extended_wires(circuit, instance, PLONKWitness(f97, [1], [1], [1]), 1)
        with pytest.raises(ConfigurationError):
            extended_wires(circuit, PLONKInstance(f97, []), PLONKWitness(f97, [1, 1], [1, 1], [1, 1]), 1)

    def test_gate_evaluations_relaxed(self, f97):
        """u = 2 에서 곱셈 게이트: E = u·(-c) + a·b."""
        circuit, instance, _ = product_rows(f97, [3], [4])
        witness = PLONKWitness(f97, [3], [4], [5])
        a, b, c = extended_wires(circuit, instance, witness, f97(2))
        e = gate_evaluations(circuit, a, b, c, f97(2))
        assert int(e[0]) == (12 - 10) % 97
        assert all(int(v) == 0 for v in e[1:])
