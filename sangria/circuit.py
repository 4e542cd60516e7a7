"""
PLONK 회로 빌더 (Circuit Builder)
===================================

셀(cell) 단위로 계산을 기술하면서 회로, 인스턴스, 증인을 함께 만든다.

**게이트 구조**:
  각 게이트는 3개의 배선 a, b, c와 5개의 셀렉터로 구성:

    q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C = 0

  | 유형    | q_L | q_R | q_O | q_M | q_C | 의미        |
  |---------|-----|-----|-----|-----|-----|-------------|
  | 곱셈    |  0  |  0  | -1  |  1  |  0  | a·b = c     |
  | 덧셈    |  1  |  1  | -1  |  0  |  0  | a + b = c   |
  | 뺄셈    |  1  | -1  | -1  |  0  |  0  | a - b = c   |
  | 상수덧셈|  1  |  0  | -1  |  0  |  k  | a + k = c   |

**셀과 복사 제약**:
  셀은 값 하나를 가진 변수이다. 같은 셀이 여러 배선 위치에 쓰이면
  그 위치들은 자동으로 같은 동치류(복사 제약)로 묶인다.
  공개 입력 셀은 공개 입력 행의 a 배선에, one() 셀은 단위 행의 a 배선에 놓인다.

사용 예시:
    >>> b = CircuitBuilder(FR)
    >>> x = b.public_input(FR(3))
    >>> x3 = b.mul(b.mul(x, x), x)
    >>> circuit, instance, witness = b.build()
"""

from sangria.errors import ConfigurationError, check_index
from sangria.field import to_field
from sangria.permutation import DisjointSet, build_permutation
from sangria.relaxed_plonk import NUM_WITNESS_COLUMNS, PLONKCircuit, PLONKInstance, PLONKWitness


class Gate:
    """PLONK 산술 게이트의 셀렉터 값."""

    def __init__(self, field, q_l, q_r, q_o, q_m, q_c):
        self.q_l = to_field(field, q_l)
        self.q_r = to_field(field, q_r)
        self.q_o = to_field(field, q_o)
        self.q_m = to_field(field, q_m)
        self.q_c = to_field(field, q_c)

    def selectors(self):
        return [self.q_l, self.q_r, self.q_o, self.q_m, self.q_c]

    def check(self, a, b, c):
        """q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C == 0 ?"""
        result = (
            self.q_l * a
            + self.q_r * b
            + self.q_o * c
            + self.q_m * (a * b)
            + self.q_c
        )
        return int(result) == 0


class CircuitBuilder:
    """셀 기반 회로 빌더.

    속성:
        field: 회로 필드
        gates: [(Gate, (a셀, b셀, c셀))] 리스트
        public: 공개 입력 셀 리스트 (추가 순서 = 공개 입력 순서)
    """

    def __init__(self, field):
        self.field = field
        self.gates = []
        self.public = []
        self._values = []
        self._cells = DisjointSet()
        self._one = None

    # ── 셀 ──

    def variable(self, value):
        """제약 없는 새 셀."""
        self._values.append(to_field(self.field, value))
        return self._cells.add()

    def value(self, cell):
        check_index(cell, len(self._values), "cell")
        return self._values[cell]

    def public_input(self, value):
        cell = self.variable(value)
        self.public.append(cell)
        return cell

    def one(self):
        """단위 행에 놓이는 상수 1 셀 (폴딩 후에는 u)."""
        if self._one is None:
            self._one = self.variable(1)
        return self._one

    def assert_equal(self, x, y):
        """두 셀을 같은 동치류로 묶는다."""
        if self.value(x) != self.value(y):
            raise ConfigurationError(
                f"셀 {x}와 {y}의 값이 다릅니다: {int(self.value(x))} != {int(self.value(y))}"
            )
        self._cells.union(x, y)

    # ── 게이트 ──

    def add_gate(self, gate, a, b, c):
        """셀 a, b, c에 게이트를 추가하고 행 번호를 돌려준다."""
        for cell in (a, b, c):
            self.value(cell)
        self.gates.append((gate, (a, b, c)))
        return len(self.gates) - 1

    def add_multiplication_gate(self, a, b, c):
        return self.add_gate(Gate(self.field, 0, 0, -1, 1, 0), a, b, c)

    def add_addition_gate(self, a, b, c):
        return self.add_gate(Gate(self.field, 1, 1, -1, 0, 0), a, b, c)

    def add_subtraction_gate(self, a, b, c):
        return self.add_gate(Gate(self.field, 1, -1, -1, 0, 0), a, b, c)

    def add_constant_gate(self, a, c, constant):
        """a + constant = c. b 배선은 쓰이지 않는 0 셀."""
        return self.add_gate(
            Gate(self.field, 1, 0, -1, 0, constant), a, self.variable(0), c
        )

    def add_copy_constraint(self, row1, col1, row2, col2):
        """게이트 row1의 col1번 배선 == 게이트 row2의 col2번 배선.

        col: 0 = a, 1 = b, 2 = c
        """
        check_index(row1, len(self.gates), "gate")
        check_index(row2, len(self.gates), "gate")
        check_index(col1, NUM_WITNESS_COLUMNS, "wire")
        check_index(col2, NUM_WITNESS_COLUMNS, "wire")
        self.assert_equal(self.gates[row1][1][col1], self.gates[row2][1][col2])

    # ── 셀 연산 (값 계산 + 게이트) ──

    def mul(self, x, y):
        out = self.variable(self.value(x) * self.value(y))
        self.add_multiplication_gate(x, y, out)
        return out

    def add(self, x, y):
        out = self.variable(self.value(x) + self.value(y))
        self.add_addition_gate(x, y, out)
        return out

    def sub(self, x, y):
        out = self.variable(self.value(x) - self.value(y))
        self.add_subtraction_gate(x, y, out)
        return out

    def add_constant(self, x, constant):
        k = to_field(self.field, constant)
        out = self.variable(self.value(x) + k)
        self.add_constant_gate(x, out, k)
        return out

    def inverse(self, x):
        """x · inv = 1 을 강제하고 inv 셀을 돌려준다. x = 0 이면 ConfigurationError."""
        v = self.value(x)
        if int(v) == 0:
            raise ConfigurationError(f"셀 {x}의 값이 0이라 역원이 없습니다")
        inv = self.variable(self.field(1) / v)
        self.add_multiplication_gate(x, inv, self.one())
        return inv

    # ── 빌드 ──

    def build(self):
        """(PLONKCircuit, PLONKInstance, PLONKWitness)를 만든다."""
        n = len(self.gates)
        ell = len(self.public)
        m = n + ell + 1
        zero = self.field(0)

        selectors = [[zero] * m for _ in range(5)]
        wires = [[], [], []]
        # 위치 → 셀 (배선 위치 = 열·m + 행)
        position_cells = {}
        for row, (gate, cells) in enumerate(self.gates):
            for k, q in enumerate(gate.selectors()):
                selectors[k][row] = q
            for col, cell in enumerate(cells):
                wires[col].append(self.value(cell))
                position_cells[col * m + row] = cell
        for j, cell in enumerate(self.public):
            position_cells[n + j] = cell
        if self._one is not None:
            position_cells[m - 1] = self._one

        classes = {}
        for position, cell in position_cells.items():
            classes.setdefault(self._cells.find(cell), []).append(position)
        sigma = build_permutation(3 * m, list(classes.values()))

        circuit = PLONKCircuit(self.field, selectors, sigma, ell)
        instance = PLONKInstance(self.field, [self.value(c) for c in self.public])
        witness = PLONKWitness(self.field, *wires)
        return circuit, instance, witness


def product_rows(field, a_vals, b_vals):
    """aᵢ·bᵢ = cᵢ 곱셈 게이트 행들. 마지막 곱을 유일한 공개 입력으로 노출한다.

    예시 (F_97):
        >>> product_rows(F97, [2, 3, 5, 7], [2, 2, 2, 2])
        # c = [4, 6, 10, 14], 공개 입력 x = [14]
    """
    if len(a_vals) != len(b_vals) or not a_vals:
        raise ConfigurationError("a, b 행 수가 같고 1 이상이어야 합니다")
    builder = CircuitBuilder(field)
    out = None
    for a, b in zip(a_vals, b_vals):
        out = builder.mul(builder.variable(a), builder.variable(b))
    builder.assert_equal(out, builder.public_input(builder.value(out)))
    return builder.build()
