"""
교차 곡선 폴딩 검사 가젯 (Fold-Check Gadget)
===============================================

한쪽 면의 폴딩에서 일어나는 커밋먼트 연산을 다른 쪽 면의 회로에서 검사한다.
커밋먼트 좌표가 검사하는 회로의 필드 원소이므로 모든 연산이 네이티브이다.

**폴딩 한 번의 커밋먼트 연산** (running + r·latest, 교차항 T):
    W_k' = W_k + r·W_k^latest           (k = a, b, c)
    Ē'   = Ē + r·(T + r·Ē^latest)       (= Ē + r·T + r²·Ē^latest, Horner)

  스칼라곱 5번, 바깥 점 덧셈 5번. 스칼라곱은 힌트가 아니라 챌린지 r의
  비트로 회로 안에서 계산한다.

**짧은 챌린지와 부호 자릿수**:
  r = 2^(c+1) + 1 + 2·Σ b_j·2^j 는 부호 자릿수 d_j = 2·b_j - 1 (j < c)와
  맨 위 두 자릿수 +1로 쓸 수 있다. 그래서 acc = 3·Q에서 시작해
  acc ← 2·acc + d_j·Q 를 c번 반복하면 r·Q가 된다.

  acc는 항상 3 이상 2^(c+2) 미만의 k에 대한 k·Q이므로 소수 위수 곡선에서
  acc = ±Q, 2·acc = ±Q 같은 예외 경우가 생기지 않는다. 그래서 반복 단계의
  덧셈은 역원 검사 없이 기울기 식만 쓴다.

**게이트 수**:
  | 가젯                 | 게이트        |
  |----------------------|---------------|
  | 곡선 위 검사         | 4             |
  | 배가                 | 7             |
  | 덧셈 (역원 검사 없음) | 9             |
  | 덧셈 (역원 검사)     | 10            |
  | 2·acc + d·Q          | 16            |
  | 스칼라곱             | 16·(c + 1)    |
  | 챌린지 비트 분해     | 2·c           |
"""

from sangria.circuit import Gate
from sangria.errors import ConfigurationError
from sangria.field import to_field


POINTS_PER_INSTANCE = 4
INPUT_POINTS = 2 * POINTS_PER_INSTANCE + 1


def fold_gates(challenge_bits):
    """fold_commitments 하나와 입력 점 9개의 곡선 위 검사에 드는 게이트 수."""
    scalar_mul = 16 * (challenge_bits + 1)
    return 4 * INPUT_POINTS + 5 * scalar_mul + 5 * 10 + 2 * challenge_bits


def _quotient(builder, numerator, denominator):
    den = builder.value(denominator)
    if int(den) == 0:
        raise ConfigurationError(f"셀 {denominator}의 값이 0이라 기울기를 정할 수 없습니다")
    return builder.variable(builder.value(numerator) / den)


def _nonzero(value):
    if int(value) == 0:
        raise ConfigurationError("y = 0 인 점은 배가할 수 없습니다")
    return value


# ─────────────────────────────────────────────────────────────────────
# 점 가젯
# ─────────────────────────────────────────────────────────────────────

def assert_on_curve(builder, point, b):
    """y² = x³ + b 를 검사하는 게이트 4개."""
    field = builder.field
    x, y = point
    x2 = builder.mul(x, x)
    x3 = builder.mul(x2, x)
    y2 = builder.mul(y, y)
    builder.add_gate(
        Gate(field, 1, -1, 0, 0, -to_field(field, b)), y2, x3, builder.variable(0)
    )


def allocate_point(builder, point, b):
    """아핀 점을 비공개 셀 (x, y)로 만들고 곡선 위 검사를 붙인다.

    Raises:
        ConfigurationError: 무한원점이거나 곡선 위에 있지 않을 때
    """
    if point is None:
        raise ConfigurationError("무한원점은 가젯에 넣을 수 없습니다")
    field = builder.field
    x, y = (to_field(field, v) for v in point)
    if y ** 2 != x ** 3 + to_field(field, b):
        raise ConfigurationError("곡선 위에 있지 않은 점입니다")
    cells = (builder.variable(x), builder.variable(y))
    assert_on_curve(builder, cells, b)
    return cells


def point_double(builder, point):
    """2·P (게이트 7개). λ·2y = 3x²."""
    field = builder.field
    x, y = point
    x2 = builder.mul(x, x)
    slope = builder.variable(
        3 * builder.value(x2) / _nonzero(2 * builder.value(y))
    )
    builder.add_gate(Gate(field, 0, 0, -3, 2, 0), slope, y, x2)
    s = builder.mul(slope, slope)
    x3 = builder.variable(builder.value(s) - 2 * builder.value(x))
    builder.add_gate(Gate(field, 1, -2, -1, 0, 0), s, x, x3)
    d = builder.sub(x, x3)
    m = builder.mul(slope, d)
    return x3, builder.sub(m, y)


def point_add(builder, p1, p2, checked=True):
    """P1 + P2 (게이트 9개, checked이면 dx 역원 검사를 더해 10개).

        dx = x2 - x1, dy = y2 - y1, λ·dx = dy
        x3 = λ² - x1 - x2, y3 = λ·(x1 - x3) - y1
    """
    x1, y1 = p1
    x2, y2 = p2
    dx = builder.sub(x2, x1)
    dy = builder.sub(y2, y1)
    if checked:
        builder.inverse(dx)
    slope = _quotient(builder, dy, dx)
    builder.add_multiplication_gate(slope, dx, dy)
    s = builder.mul(slope, slope)
    t = builder.sub(s, x1)
    x3 = builder.sub(t, x2)
    d = builder.sub(x1, x3)
    m = builder.mul(slope, d)
    return x3, builder.sub(m, y1)


def double_and_add(builder, acc, point, bit):
    """2·acc + d·Q, d = 2·bit - 1 (게이트 16개).

    R = acc + d·Q의 y는 만들지 않고 (acc + d·Q) + acc 의 기울기를
    λ2 = -λ1 - 2·y_acc / (x_R - x_acc) 로 바로 구한다.
    """
    field = builder.field
    xa, ya = acc
    xq, yq = point

    # y_sel = (2b - 1)·y_Q
    signed = 2 * builder.value(bit) - 1
    y_sel = builder.variable(signed * builder.value(yq))
    builder.add_gate(Gate(field, 0, -1, -1, 2, 0), bit, yq, y_sel)

    dx = builder.sub(xq, xa)
    dy = builder.sub(y_sel, ya)
    slope1 = _quotient(builder, dy, dx)
    builder.add_multiplication_gate(slope1, dx, dy)
    s1 = builder.mul(slope1, slope1)
    t1 = builder.sub(s1, xa)
    xr = builder.sub(t1, xq)

    # v·e + 2·y_acc = 0, λ2 = v - λ1
    e = builder.sub(xr, xa)
    if int(builder.value(e)) == 0:
        raise ConfigurationError("x_R == x_acc 인 배가-덧셈은 가젯이 다루지 않습니다")
    v = builder.variable(-2 * builder.value(ya) / builder.value(e))
    builder.add_gate(Gate(field, 0, 0, 2, 1, 0), v, e, ya)
    slope2 = builder.sub(v, slope1)

    s2 = builder.mul(slope2, slope2)
    t2 = builder.sub(s2, xr)
    x4 = builder.sub(t2, xa)
    f = builder.sub(xa, x4)
    g = builder.mul(slope2, f)
    return x4, builder.sub(g, ya)


# ─────────────────────────────────────────────────────────────────────
# 챌린지 비트 / 스칼라곱
# ─────────────────────────────────────────────────────────────────────

def challenge_bit_cells(builder, challenge, challenge_bits):
    """r = 2^(c+1) + 1 + 2·Σ b_j·2^j 의 비트 셀 [b_0, ..., b_(c-1)] (게이트 2·c개).

    비트마다 b·b = b, 그리고 재조합 결과를 셀 challenge와 묶는다.

    Raises:
        ConfigurationError: challenge 값이 이 꼴이 아닐 때
    """
    field = builder.field
    offset = (1 << (challenge_bits + 1)) + 1
    value = int(builder.value(challenge)) - offset
    if value < 0 or value % 2 or value >> (challenge_bits + 1):
        raise ConfigurationError(
            f"챌린지 {int(builder.value(challenge))}는 {challenge_bits}비트 짧은 챌린지가 아닙니다"
        )
    m = value // 2
    bits = [builder.variable((m >> j) & 1) for j in range(challenge_bits)]
    for bit in bits:
        builder.add_multiplication_gate(bit, bit, bit)

    acc = bits[-1]
    for bit in reversed(bits[:-1]):
        nxt = builder.variable(2 * builder.value(acc) + builder.value(bit))
        builder.add_gate(Gate(field, 2, 1, -1, 0, 0), acc, bit, nxt)
        acc = nxt
    recomposed = builder.variable(2 * builder.value(acc) + offset)
    builder.add_gate(Gate(field, 2, 0, -1, 0, offset), acc, builder.variable(0), recomposed)
    builder.assert_equal(recomposed, challenge)
    return bits


def scalar_mul(builder, point, bits):
    """r·Q. bits는 challenge_bit_cells의 결과 (게이트 16·(c + 1)개)."""
    acc = point_add(builder, point, point_double(builder, point), checked=False)
    for bit in reversed(bits):
        acc = double_and_add(builder, acc, point, bit)
    return acc


# ─────────────────────────────────────────────────────────────────────
# 폴딩 검사
# ─────────────────────────────────────────────────────────────────────

def fold_commitments(builder, running, latest, cross_term, bits):
    """running + r·latest 의 커밋먼트 4개를 계산한다.

    Args:
        running: running 인스턴스 점 셀 [W_a, W_b, W_c, Ē]
        latest: latest 인스턴스 점 셀 [W_a, W_b, W_c, Ē]
        cross_term: 교차항 커밋먼트 T의 점 셀
        bits: 챌린지 비트 셀

    Returns:
        list: 폴딩된 점 셀 [W_a', W_b', W_c', Ē']
    """
    if len(running) != POINTS_PER_INSTANCE or len(latest) != POINTS_PER_INSTANCE:
        raise ConfigurationError(f"인스턴스마다 점은 {POINTS_PER_INSTANCE}개여야 합니다")
    outputs = [
        point_add(builder, running[k], scalar_mul(builder, latest[k], bits))
        for k in range(3)
    ]
    inner = point_add(builder, cross_term, scalar_mul(builder, latest[3], bits))
    outputs.append(point_add(builder, running[3], scalar_mul(builder, inner, bits)))
    return outputs


def instance_points(instance):
    """relaxed 인스턴스의 커밋먼트 점 [W_a, W_b, W_c, Ē]."""
    points = [c.element for c in instance.witness_commitments()]
    points.append(instance.slack_commitment().element)
    return points


def fold_points(group, running, latest, cross_term, challenge):
    """fold_commitments의 네이티브 계산 (점 리스트)."""
    r = int(challenge)
    outputs = [group.add(running[k], group.mul(latest[k], r)) for k in range(3)]
    inner = group.add(cross_term, group.mul(latest[3], r))
    outputs.append(group.add(running[3], group.mul(inner, r)))
    return outputs
