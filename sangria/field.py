"""
Sangria 기반 모듈: 유한체(Finite Field) 도구
=============================================

폴딩 스킴 전체에서 사용되는 기본 대수적 도구를 정의한다.

**유한체 FR / FQ**:
  bn128(BN254) 곡선의 스칼라 필드 FR과 기저 필드 FQ.
  - FR: BN254 G1 위의 커밋먼트가 커밋하는 벡터의 원소 (main field)
  - FQ: BN254 점의 좌표가 사는 필드 = Grumpkin의 스칼라 필드 (helper field)
  두 필드는 BN254/Grumpkin 곡선 사이클에서 서로의 역할을 맞바꾼다.

**임의의 소수체**:
  prime_field(p)는 py_ecc의 FQ를 상속한 새 필드 클래스를 만든다.
  테스트에서는 작은 필드 F_97을 사용한다.

**벡터 연산**:
  폴딩은 열(column) 단위의 선형 결합 L + r·R 로 표현되므로
  벡터 덧셈/스칼라곱 헬퍼를 함께 제공한다.

사용 예시:
    >>> from sangria.field import FR, prime_field, sqrt
    >>> F97 = prime_field(97)
    >>> F97(5) * F97(20)   # F97(3)
    >>> sqrt(F97(4))       # F97(2) 또는 F97(95)
"""

import secrets

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR, FQ
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    bn128.curve_order (≈ 2^254) 위의 모듈러 산술을 지원한다.
    BN254 G1 위의 Pedersen 커밋먼트는 FR 벡터에 대해 준동형이다.
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (FR의 크기)
CURVE_ORDER = bn128.curve_order

# 기저 필드 크기 (FQ의 크기, Grumpkin의 위수)
FIELD_MODULUS = bn128.field_modulus


def prime_field(modulus, name=None):
    """주어진 소수 modulus 위의 필드 클래스를 만든다.

    Args:
        modulus: 소수 p
        name: 클래스 이름 (기본값: "F{p}")

    Returns:
        type: FQ를 상속하고 field_modulus = p 인 클래스

    예시:
        >>> F97 = prime_field(97)
        >>> F97(96) + F97(1) == F97(0)   # True
    """
    if modulus < 2:
        raise ValueError(f"필드 크기는 2 이상의 소수여야 합니다: {modulus}")
    return type(name or f"F{modulus}", (FQ,), {"field_modulus": modulus})


def same_field(field_a, field_b):
    """두 필드 클래스가 같은 소수 위에 정의되었는지 확인한다."""
    return field_a.field_modulus == field_b.field_modulus


def to_field(field, value):
    """값을 field의 원소로 변환한다.

    py_ecc의 FQ는 다른 FQ 원소를 받으면 n을 그대로 복사하므로
    (모듈러 축소 없음) 항상 정수를 거쳐서 변환한다.
    """
    if type(value) is field:
        return value
    return field(int(value))


# ─────────────────────────────────────────────────────────────────────
# 제곱근 (Tonelli–Shanks)
# ─────────────────────────────────────────────────────────────────────

def sqrt(value):
    """필드 원소의 제곱근을 구한다. 제곱잉여가 아니면 None.

    p ≡ 3 (mod 4)이면 value^((p+1)/4) 한 번으로 끝나고 (BN254 기저 필드),
    그렇지 않으면 Tonelli–Shanks 알고리즘을 사용한다 (FR은 p-1 = 2^28·m).

    Args:
        value: 필드 원소

    Returns:
        같은 필드의 원소 y (y² = value) 또는 None
    """
    field = type(value)
    p = field.field_modulus
    n = int(value) % p
    if n == 0:
        return field(0)
    # 오일러 판정법: 제곱잉여가 아니면 n^((p-1)/2) = -1
    if pow(n, (p - 1) // 2, p) != 1:
        return None
    if p % 4 == 3:
        return field(pow(n, (p + 1) // 4, p))

    # p - 1 = q · 2^s (q 홀수)
    q, s = p - 1, 0
    while q % 2 == 0:
        q //= 2
        s += 1
    # 비잉여 z 찾기
    z = 2
    while pow(z, (p - 1) // 2, p) != p - 1:
        z += 1

    m = s
    c = pow(z, q, p)
    t = pow(n, q, p)
    r = pow(n, (q + 1) // 2, p)
    while t != 1:
        # t^(2^i) = 1 인 최소 i
        i, t2 = 0, t
        while t2 != 1:
            t2 = t2 * t2 % p
            i += 1
        b = pow(c, 1 << (m - i - 1), p)
        m = i
        c = b * b % p
        t = t * c % p
        r = r * b % p
    return field(r)


# ─────────────────────────────────────────────────────────────────────
# 난수 원소
# ─────────────────────────────────────────────────────────────────────

def default_rng():
    """호출자가 난수원을 주지 않았을 때 사용하는 OS 난수원."""
    return secrets.SystemRandom()


def random_element(field, rng=None):
    """field에서 균등하게 원소 하나를 뽑는다."""
    rng = rng or default_rng()
    return field(rng.randrange(field.field_modulus))


def random_nonzero(field, rng=None):
    """field에서 0이 아닌 원소 하나를 뽑는다 (블라인딩 인자용)."""
    rng = rng or default_rng()
    return field(rng.randrange(1, field.field_modulus))


# ─────────────────────────────────────────────────────────────────────
# 벡터 연산
# ─────────────────────────────────────────────────────────────────────

def zero_vector(field, length):
    """길이 length의 영벡터."""
    return [field(0) for _ in range(length)]


def vector_add(left, right):
    """원소별 덧셈 left + right. 길이가 다르면 ValueError."""
    if len(left) != len(right):
        raise ValueError(f"벡터 길이 불일치: {len(left)} != {len(right)}")
    return [x + y for x, y in zip(left, right)]


def vector_scale(vector, scalar):
    """스칼라곱 scalar · vector."""
    return [x * scalar for x in vector]


def is_zero_vector(vector):
    return all(int(x) == 0 for x in vector)


# ─────────────────────────────────────────────────────────────────────
# 림(limb) 분해: 트랜스크립트 인코딩용
# ─────────────────────────────────────────────────────────────────────

def limb_bits(field):
    """field 원소 하나에 손실 없이 담을 수 있는 비트 수 (⌊log2 p⌋)."""
    return field.field_modulus.bit_length() - 1


def int_to_limbs(value, total_bits, field):
    """total_bits 비트 이하의 정수를 field 원소 림들로 분해한다.

    림 개수는 total_bits에만 의존하므로, 같은 종류의 값은 항상
    같은 길이로 인코딩된다 (단사성 보장).

    예시 (F_97, 림 6비트):
        >>> int_to_limbs(388, 9, F97)   # [F97(4), F97(6)]  (388 = 6·64 + 4)
    """
    if value < 0 or value >> total_bits:
        raise ValueError(f"{value}는 {total_bits}비트에 담기지 않습니다")
    bits = limb_bits(field)
    mask = (1 << bits) - 1
    count = -(-total_bits // bits)
    return [field((value >> (bits * k)) & mask) for k in range(count)]
