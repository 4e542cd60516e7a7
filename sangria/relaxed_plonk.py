"""
Relaxed PLONK 관계 (Relation Model)
=====================================

폴딩의 대상이 되는 정적/동적 데이터: 회로, 인스턴스, 증인과
그들의 relaxed(폴딩 가능한) 일반화.

**확장 행(extended row) 배치**:
  게이트 수 n, 공개 입력 수 ℓ 일 때 셀렉터/슬랙/교차항은 m = n + ℓ + 1 행.

  | 행            | a     | b | c | 셀렉터   |
  |---------------|-------|---|---|----------|
  | 0 .. n-1      | 증인  | 증인 | 증인 | 게이트 |
  | n .. n+ℓ-1    | x_j   | 0 | 0 | 모두 0   |
  | n+ℓ           | u     | 0 | 0 | 모두 0   |

  공개 입력 행과 단위(unit) 행은 복사 제약으로만 게이트에 연결된다.
  단위 행의 a = u 는 unrelaxed 트레이스의 상수 1이 폴딩 후 u가 되는 것을
  배선 수준에서 추적한다.

**Relaxed 게이트 방정식** (행 i마다):
  E_i = u·(q_L·aᵢ + q_R·bᵢ + q_O·cᵢ) + q_M·aᵢ·bᵢ + u²·q_C

  u = 1, E = 0 이면 일반 PLONK 게이트 q_L·a + q_R·b + q_O·c + q_M·a·b + q_C = 0.
  차수 2 항(q_M·a·b, u²·q_C) 때문에 단순 선형 결합 L + r·R 은 관계를
  만족하지 않으며, 그 차이를 교차항 T와 슬랙 E가 흡수한다.

**Relaxed 인스턴스/증인**:
  인스턴스 = (공개 입력 x, 스케일 u, 슬랙 커밋먼트 Ē, 배선 커밋먼트 W_a, W_b, W_c)
  증인     = (배선 a, b, c, 슬랙 E, 배선 블라인딩 ρ_a, ρ_b, ρ_c, 슬랙 블라인딩 ρ_E)
"""

from sangria.errors import ConfigurationError, check_index
from sangria.field import is_zero_vector, same_field, to_field, zero_vector
from sangria.permutation import is_permutation


NUM_SELECTORS = 5
NUM_WITNESS_COLUMNS = 3

# 셀렉터 인덱스
Q_L, Q_R, Q_O, Q_M, Q_C = range(NUM_SELECTORS)


# ─────────────────────────────────────────────────────────────────────
# 필드 행렬
# ─────────────────────────────────────────────────────────────────────

class FieldMatrix:
    """필드 원소의 열 우선(column-major) 행렬.

    모든 열의 길이가 같다. column(i), row(i)는 범위를 검사한다.
    """

    __hash__ = None

    def __init__(self, field, columns):
        self.field = field
        self._columns = [[to_field(field, v) for v in col] for col in columns]
        lengths = {len(col) for col in self._columns}
        if len(lengths) > 1:
            raise ConfigurationError(f"열 길이가 서로 다릅니다: {sorted(lengths)}")

    @classmethod
    def _from_columns(cls, field, columns):
        matrix = cls.__new__(cls)
        FieldMatrix.__init__(matrix, field, columns)
        return matrix

    @property
    def num_columns(self):
        return len(self._columns)

    @property
    def num_rows(self):
        return len(self._columns[0]) if self._columns else 0

    def column(self, i):
        check_index(i, self.num_columns, "column")
        return list(self._columns[i])

    def row(self, i):
        check_index(i, self.num_rows, "row")
        return [col[i] for col in self._columns]

    def columns(self):
        return [list(col) for col in self._columns]

    def _check_shape(self, other):
        if (
            type(other) is not type(self)
            or not same_field(self.field, other.field)
            or other.num_columns != self.num_columns
            or other.num_rows != self.num_rows
        ):
            raise ConfigurationError(f"행렬 모양이 다릅니다: {self!r} / {other!r}")

    def __add__(self, other):
        self._check_shape(other)
        columns = [
            [x + y for x, y in zip(left, right)]
            for left, right in zip(self._columns, other._columns)
        ]
        return type(self)._from_columns(self.field, columns)

    def __mul__(self, scalar):
        c = to_field(self.field, scalar)
        return type(self)._from_columns(
            self.field, [[x * c for x in col] for col in self._columns]
        )

    __rmul__ = __mul__

    def __eq__(self, other):
        if not isinstance(other, FieldMatrix):
            return NotImplemented
        return same_field(self.field, other.field) and self._columns == other._columns

    def append_to_transcript(self, transcript, label):
        for i, col in enumerate(self._columns):
            transcript.append_scalars(label + b"/col" + str(i).encode(), col)

    def __repr__(self):
        return (
            f"{type(self).__name__}({self.field.__name__}, "
            f"{self.num_columns}x{self.num_rows})"
        )


class PLONKInstance(FieldMatrix):
    """공개 입력/출력 열 하나로 된 행렬 (ℓ행)."""

    def __init__(self, field, public_inputs):
        super().__init__(field, [public_inputs])

    def public_inputs(self):
        return self.column(0)


class PLONKWitness(FieldMatrix):
    """게이트별 배선 값 a, b, c 세 열로 된 행렬 (n행)."""

    def __init__(self, field, a, b, c):
        super().__init__(field, [a, b, c])


# ─────────────────────────────────────────────────────────────────────
# 회로
# ─────────────────────────────────────────────────────────────────────

class PLONKCircuit:
    """셀렉터 열과 복사 제약 순열로 된 불변 회로 기술.

    Args:
        field: 회로 필드
        selectors: 셀렉터 열 리스트 [q_L, q_R, q_O, q_M, q_C], 각 길이 m
        permutation: 길이 3m의 순열
        number_of_public_inputs: ℓ

    셀렉터 열의 개수는 생성 시 검사하지 않는다. 5개 미만이면
    selector(i) 접근에서 IndexOutOfBounds가 발생한다.
    """

    __hash__ = None

    def __init__(self, field, selectors, permutation, number_of_public_inputs):
        self.field = field
        self._selectors = tuple(
            tuple(to_field(field, v) for v in col) for col in selectors
        )
        self._permutation = tuple(permutation)
        self.number_of_public_inputs = number_of_public_inputs

        lengths = {len(col) for col in self._selectors}
        if len(lengths) > 1:
            raise ConfigurationError(f"셀렉터 열 길이가 서로 다릅니다: {sorted(lengths)}")
        rows = lengths.pop() if lengths else 0
        if rows < number_of_public_inputs + 1:
            raise ConfigurationError(
                f"행 수 {rows}가 공개 입력 {number_of_public_inputs}개와 단위 행을 담지 못합니다"
            )
        if len(self._permutation) != 3 * rows or not is_permutation(self._permutation):
            raise ConfigurationError(f"길이 {3 * rows}의 순열이 아닙니다")
        self._rows = rows

    @property
    def number_of_rows(self):
        """확장 행 수 m = n + ℓ + 1."""
        return self._rows

    @property
    def number_of_gates(self):
        return self._rows - self.number_of_public_inputs - 1

    @property
    def number_of_selectors(self):
        return len(self._selectors)

    @property
    def unit_row(self):
        return self._rows - 1

    def selector(self, i):
        check_index(i, len(self._selectors), "selector")
        return list(self._selectors[i])

    def permutation(self):
        return list(self._permutation)

    def __eq__(self, other):
        if not isinstance(other, PLONKCircuit):
            return NotImplemented
        return (
            same_field(self.field, other.field)
            and self._selectors == other._selectors
            and self._permutation == other._permutation
            and self.number_of_public_inputs == other.number_of_public_inputs
        )

    def __repr__(self):
        return (
            f"PLONKCircuit({self.field.__name__}, gates={self.number_of_gates}, "
            f"public_inputs={self.number_of_public_inputs})"
        )


# ─────────────────────────────────────────────────────────────────────
# Relaxed 인스턴스 / 증인
# ─────────────────────────────────────────────────────────────────────

class RelaxedPLONKInstance:
    """폴딩 가능한 PLONK 인스턴스.

    trivial(unrelaxed) 인스턴스는 u = 1 이고 슬랙 커밋먼트가 영벡터의 커밋먼트이다.
    """

    __hash__ = None

    def __init__(self, plonk_instance, scaling_factor, slack_commitment,
                 witness_commitments):
        if len(witness_commitments) != NUM_WITNESS_COLUMNS:
            raise ConfigurationError(
                f"배선 커밋먼트는 {NUM_WITNESS_COLUMNS}개여야 합니다: {len(witness_commitments)}"
            )
        self._plonk_instance = plonk_instance
        self._scaling_factor = to_field(plonk_instance.field, scaling_factor)
        self._slack_commitment = slack_commitment
        self._witness_commitments = list(witness_commitments)

    @property
    def field(self):
        return self._plonk_instance.field

    def plonk_instance(self):
        return self._plonk_instance

    def public_inputs(self):
        return self._plonk_instance.public_inputs()

    def scaling_factor(self):
        return self._scaling_factor

    def slack_commitment(self):
        return self._slack_commitment

    def witness_commitments(self):
        return list(self._witness_commitments)

    def single_witness_commitment(self, i):
        check_index(i, len(self._witness_commitments), "witness commitment")
        return self._witness_commitments[i]

    def __mul__(self, scalar):
        """c · (x, u, Ē, W) = (c·x, c·u, c·Ē, c·W)."""
        c = to_field(self.field, scalar)
        return RelaxedPLONKInstance(
            self._plonk_instance * c,
            self._scaling_factor * c,
            self._slack_commitment * c,
            [w * c for w in self._witness_commitments],
        )

    __rmul__ = __mul__

    def __add__(self, other):
        if not isinstance(other, RelaxedPLONKInstance):
            return NotImplemented
        return RelaxedPLONKInstance(
            self._plonk_instance + other._plonk_instance,
            self._scaling_factor + other._scaling_factor,
            self._slack_commitment + other._slack_commitment,
            [l + r for l, r in zip(self._witness_commitments, other._witness_commitments)],
        )

    def __eq__(self, other):
        if not isinstance(other, RelaxedPLONKInstance):
            return NotImplemented
        return (
            self._plonk_instance == other._plonk_instance
            and self._scaling_factor == other._scaling_factor
            and self._slack_commitment == other._slack_commitment
            and self._witness_commitments == other._witness_commitments
        )

    def append_to_transcript(self, transcript, label):
        """(x, u, Ē, W_a, W_b, W_c) 순서로 흡수한다."""
        self._plonk_instance.append_to_transcript(transcript, label + b"/x")
        transcript.append_scalar(label + b"/u", self._scaling_factor)
        transcript.append_commitment(label + b"/E", self._slack_commitment)
        transcript.append_commitments(label + b"/W", self._witness_commitments)

    def __repr__(self):
        return (
            f"RelaxedPLONKInstance(u={int(self._scaling_factor)}, "
            f"x={[int(v) for v in self.public_inputs()]})"
        )


class RelaxedPLONKWitness:
    """폴딩 가능한 PLONK 증인.

    배선 열과 그 커밋먼트 블라인딩은 witness_column_with_rand로
    항상 함께 꺼낸다. trivial 증인의 슬랙 벡터는 영벡터이다.
    """

    __hash__ = None

    def __init__(self, plonk_witness, slack_vector, commitment_hidings, slack_hiding):
        if len(commitment_hidings) != plonk_witness.num_columns:
            raise ConfigurationError(
                f"블라인딩 수 {len(commitment_hidings)}가 배선 열 수 "
                f"{plonk_witness.num_columns}와 다릅니다"
            )
        field = plonk_witness.field
        self._plonk_witness = plonk_witness
        self._slack_vector = [to_field(field, v) for v in slack_vector]
        self._commitment_hidings = [to_field(field, v) for v in commitment_hidings]
        self._slack_hiding = to_field(field, slack_hiding)

    @classmethod
    def trivial(cls, plonk_witness, number_of_rows, commitment_hidings, slack_hiding):
        """슬랙이 영벡터인 증인."""
        return cls(
            plonk_witness,
            zero_vector(plonk_witness.field, number_of_rows),
            commitment_hidings,
            slack_hiding,
        )

    @property
    def field(self):
        return self._plonk_witness.field

    def plonk_witness(self):
        return self._plonk_witness

    def slack_vector(self):
        return list(self._slack_vector)

    def hiding_randomnesses(self):
        return list(self._commitment_hidings)

    def slack_hiding(self):
        return self._slack_hiding

    def witness_column_with_rand(self, i):
        """(i번째 배선 열, 그 블라인딩)."""
        column = self._plonk_witness.column(i)
        return column, self._commitment_hidings[i]

    def is_trivial(self):
        return is_zero_vector(self._slack_vector)

    def __mul__(self, scalar):
        c = to_field(self.field, scalar)
        return RelaxedPLONKWitness(
            self._plonk_witness * c,
            [e * c for e in self._slack_vector],
            [h * c for h in self._commitment_hidings],
            self._slack_hiding * c,
        )

    __rmul__ = __mul__

    def __add__(self, other):
        if not isinstance(other, RelaxedPLONKWitness):
            return NotImplemented
        if len(other._slack_vector) != len(self._slack_vector):
            raise ConfigurationError(
                f"슬랙 길이가 다릅니다: {len(self._slack_vector)} / {len(other._slack_vector)}"
            )
        return RelaxedPLONKWitness(
            self._plonk_witness + other._plonk_witness,
            [x + y for x, y in zip(self._slack_vector, other._slack_vector)],
            [x + y for x, y in zip(self._commitment_hidings, other._commitment_hidings)],
            self._slack_hiding + other._slack_hiding,
        )

    def __eq__(self, other):
        if not isinstance(other, RelaxedPLONKWitness):
            return NotImplemented
        return (
            self._plonk_witness == other._plonk_witness
            and self._slack_vector == other._slack_vector
            and self._commitment_hidings == other._commitment_hidings
            and self._slack_hiding == other._slack_hiding
        )

    def __repr__(self):
        return (
            f"RelaxedPLONKWitness(rows={self._plonk_witness.num_rows}, "
            f"trivial={self.is_trivial()})"
        )


# ─────────────────────────────────────────────────────────────────────
# 확장 배선과 게이트 평가
# ─────────────────────────────────────────────────────────────────────

def extended_wires(circuit, plonk_instance, plonk_witness, scaling_factor):
    """게이트 행 배선 뒤에 공개 입력 행과 단위 행을 붙인 (a, b, c).

    Raises:
        ConfigurationError: 증인 행 수 != n 이거나 공개 입력 수 != ℓ
    """
    n = circuit.number_of_gates
    ell = circuit.number_of_public_inputs
    if plonk_witness.num_rows != n or plonk_witness.num_columns != NUM_WITNESS_COLUMNS:
        raise ConfigurationError(
            f"증인 {plonk_witness!r}가 게이트 {n}개 회로와 맞지 않습니다"
        )
    if plonk_instance.num_rows != ell:
        raise ConfigurationError(
            f"공개 입력 {plonk_instance.num_rows}개가 회로의 {ell}개와 다릅니다"
        )
    field = circuit.field
    zeros = zero_vector(field, ell + 1)
    u = to_field(field, scaling_factor)
    a = plonk_witness.column(0) + plonk_instance.public_inputs() + [u]
    b = plonk_witness.column(1) + zeros
    c = plonk_witness.column(2) + zeros
    return a, b, c


def gate_evaluations(circuit, a, b, c, scaling_factor):
    """행마다 u·(q_L·a + q_R·b + q_O·c) + q_M·a·b + u²·q_C 를 계산한다."""
    q_l, q_r, q_o, q_m, q_c = (circuit.selector(i) for i in range(NUM_SELECTORS))
    u = to_field(circuit.field, scaling_factor)
    u2 = u * u
    return [
        u * (q_l[i] * a[i] + q_r[i] * b[i] + q_o[i] * c[i])
        + q_m[i] * a[i] * b[i]
        + u2 * q_c[i]
        for i in range(circuit.number_of_rows)
    ]
