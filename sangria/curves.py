"""
커밋먼트 그룹: 타원곡선과 Schnorr 그룹
=======================================

준동형 커밋먼트는 소수 위수 그룹 위에서 정의된다. 이 모듈은 두 종류의
그룹을 같은 인터페이스(add, neg, mul, msm, eq, hash_to_group, to_integers)로 제공한다.

**CurveGroup**: y² = x³ + b (a = 0) 단축 바이어슈트라스 곡선:
  py_ecc.bn128 / optimized_bn128의 덧셈·배가 공식은 좌표 필드에 대해
  제네릭하므로 BN254 G1뿐 아니라 Grumpkin 점에도 그대로 사용한다.
  무한원점(항등원)은 py_ecc와 같이 None으로 표현한다.

  | 곡선     | 좌표 필드 | 위수 (= 스칼라 필드) | b   |
  |----------|-----------|-----------------------|-----|
  | BN254    | FQ        | FR                    | 3   |
  | Grumpkin | FR        | FQ                    | -17 |

  BN254 점의 좌표는 FQ, Grumpkin 점의 좌표는 FR에 있으므로 두 곡선은
  사이클(cycle)을 이룬다: 한쪽 필드의 회로가 다른 쪽 곡선의 덧셈을
  네이티브 산술로 검사할 수 있다.

**SchnorrGroup**: Z_p^*의 위수 q 부분군:
  작은 테스트 필드(F_97 등)를 위한 그룹. 원소는 p보다 작은 정수이고
  그룹 연산은 곱셈, 스칼라곱은 거듭제곱이다.

사용 예시:
    >>> P = BN254.mul(BN254.generator, 5)
    >>> BN254.add(P, BN254.neg(P)) is None   # True
"""

import hashlib

from py_ecc import bn128, optimized_bn128

from sangria.field import FR, FQ, sqrt, to_field


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 그룹
# ─────────────────────────────────────────────────────────────────────

class CurveGroup:
    """a = 0 단축 바이어슈트라스 곡선 위의 소수 위수 점 그룹.

    속성:
        name: 곡선 이름 (직렬화 시 식별자)
        base_field: 점 좌표가 사는 필드
        scalar_field: 그룹 위수의 필드 (커밋되는 벡터의 필드)
        b: 곡선 계수
        generator: 고정 생성원
    """

    identity = None

    def __init__(self, name, base_field, scalar_field, b, generator):
        self.name = name
        self.base_field = base_field
        self.scalar_field = scalar_field
        self.b = to_field(base_field, b)
        self.generator = generator
        if not self.is_on_curve(generator):
            raise ValueError(f"{name}: 생성원이 곡선 위에 있지 않습니다")

    @property
    def order(self):
        return self.scalar_field.field_modulus

    @property
    def element_bits(self):
        """좌표 하나를 표현하는 데 필요한 비트 수."""
        return self.base_field.field_modulus.bit_length()

    def add(self, p1, p2):
        return bn128.add(p1, p2)

    def neg(self, point):
        return bn128.neg(point)

    def mul(self, point, scalar):
        """scalar · point. scalar는 정수 또는 스칼라 필드 원소."""
        k = int(scalar) % self.order
        if point is None or k == 0:
            return None
        # 사영(projective) 좌표에서 곱한 뒤 아핀 좌표로 되돌린다 (역원 계산 1회)
        x, y = point
        result = optimized_bn128.multiply((x, y, x.one()), k)
        if optimized_bn128.is_inf(result):
            return None
        return optimized_bn128.normalize(result)

    def msm(self, points, scalars):
        """Σ kᵢ·Pᵢ 다중 스칼라곱 (Pippenger 버킷 방식).

        스칼라를 window 비트씩 끊어 윈도우마다 같은 값의 점을 버킷에 모은 뒤
        누적합 두 번으로 Σ d·B_d 를 만든다. 점 n개에 대해 점 덧셈이
        대략 (254 / window)·(n + 2^(window+1)) 번으로 줄어든다.
        """
        terms = [
            (point, int(k) % self.order)
            for point, k in zip(points, scalars)
            if point is not None and int(k) % self.order != 0
        ]
        if not terms:
            return None
        if len(terms) == 1:
            return self.mul(*terms[0])

        one, zero = self.base_field.one(), self.base_field.zero()
        infinity = (one, one, zero)
        projective = [((x, y, one), k) for (x, y), k in terms]
        window = max(1, len(terms).bit_length() - 3)
        mask = (1 << window) - 1
        bits = max(k.bit_length() for _, k in terms)

        result = infinity
        for start in reversed(range(0, bits, window)):
            if not optimized_bn128.is_inf(result):
                for _ in range(window):
                    result = optimized_bn128.double(result)
            buckets = [infinity] * (mask + 1)
            for point, k in projective:
                digit = (k >> start) & mask
                if digit:
                    buckets[digit] = optimized_bn128.add(buckets[digit], point)
            running = infinity
            window_sum = infinity
            for digit in range(mask, 0, -1):
                running = optimized_bn128.add(running, buckets[digit])
                window_sum = optimized_bn128.add(window_sum, running)
            result = optimized_bn128.add(result, window_sum)

        if optimized_bn128.is_inf(result):
            return None
        return optimized_bn128.normalize(result)

    def eq(self, p1, p2):
        return p1 == p2

    def is_on_curve(self, point):
        return bn128.is_on_curve(point, self.b)

    def hash_to_group(self, seed):
        """seed에서 이산로그를 모르는 점을 유도한다 (try-and-increment).

        x = SHA-256(seed ‖ counter) mod p 로 두고 x³ + b가 제곱잉여가
        될 때까지 counter를 증가시킨다. 두 곡선 모두 여인수(cofactor)가
        1이므로 곡선 위의 모든 점이 곧 그룹 원소이다.
        """
        counter = 0
        while True:
            digest = hashlib.sha256(seed + counter.to_bytes(4, "big")).digest()
            x = self.base_field(int.from_bytes(digest, "big"))
            y = sqrt(x ** 3 + self.b)
            if y is not None and int(y) != 0:
                return (x, y)
            counter += 1

    def to_integers(self, point):
        """점 → [x, y] 정수 리스트. 무한원점은 [0, 0] (곡선 위의 점이 아님)."""
        if point is None:
            return [0, 0]
        return [int(point[0]), int(point[1])]

    def from_integers(self, values):
        x, y = values
        if x == 0 and y == 0:
            return None
        point = (self.base_field(x), self.base_field(y))
        if not self.is_on_curve(point):
            raise ValueError(f"{self.name}: 곡선 위의 점이 아닙니다")
        return point

    def __repr__(self):
        return f"CurveGroup({self.name})"


# ─────────────────────────────────────────────────────────────────────
# Schnorr 그룹 (테스트용 작은 필드)
# ─────────────────────────────────────────────────────────────────────

class SchnorrGroup:
    """Z_p^*의 위수 q 부분군. q = scalar_field.field_modulus, q | p - 1.

    그룹 연산을 덧셈 기호로 쓰기 위해 add = 곱셈, mul = 거듭제곱으로 둔다.
    """

    identity = 1

    def __init__(self, name, modulus, scalar_field):
        self.name = name
        self.modulus = modulus
        self.scalar_field = scalar_field
        if (modulus - 1) % self.order != 0:
            raise ValueError(f"{name}: 위수 {self.order}가 p - 1을 나누지 않습니다")
        self.generator = self.hash_to_group(name.encode())

    @property
    def order(self):
        return self.scalar_field.field_modulus

    @property
    def element_bits(self):
        return self.modulus.bit_length()

    def add(self, a, b):
        return a * b % self.modulus

    def neg(self, a):
        return pow(a, -1, self.modulus)

    def mul(self, a, scalar):
        return pow(a, int(scalar) % self.order, self.modulus)

    def msm(self, elements, scalars):
        acc = 1
        for a, k in zip(elements, scalars):
            acc = acc * self.mul(a, k) % self.modulus
        return acc

    def eq(self, a, b):
        return a == b

    def hash_to_group(self, seed):
        """h = SHA-256(seed ‖ counter) mod p 를 (p-1)/q 제곱하여 부분군으로 보낸다."""
        cofactor = (self.modulus - 1) // self.order
        counter = 0
        while True:
            digest = hashlib.sha256(seed + counter.to_bytes(4, "big")).digest()
            h = int.from_bytes(digest, "big") % self.modulus
            g = pow(h, cofactor, self.modulus)
            if h != 0 and g != 1:
                return g
            counter += 1

    def to_integers(self, a):
        return [a]

    def from_integers(self, values):
        (a,) = values
        if pow(a, self.order, self.modulus) != 1:
            raise ValueError(f"{self.name}: 부분군의 원소가 아닙니다")
        return a

    def __repr__(self):
        return f"SchnorrGroup({self.name}, p={self.modulus})"


# ─────────────────────────────────────────────────────────────────────
# BN254 / Grumpkin 사이클
# ─────────────────────────────────────────────────────────────────────

BN254 = CurveGroup("bn254", FQ, FR, 3, bn128.G1)

# Grumpkin: y² = x³ - 17 over FR, 생성원 (1, √-16)
GRUMPKIN = CurveGroup(
    "grumpkin", FR, FQ, -17, (FR(1), sqrt(FR(1) + FR(-17)))
)
