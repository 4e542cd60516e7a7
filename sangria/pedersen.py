"""
Pedersen 벡터 커밋먼트 (Homomorphic Commitment)
=================================================

폴딩 스킴이 소비하는 준동형 커밋먼트 기능의 구현.

**Pedersen 커밋먼트**:
  커밋 키: 이산로그 관계를 아무도 모르는 생성원 G_0, ..., G_{n-1}, H
  커밋:    Commit(v, ρ) = Σ vᵢ·Gᵢ + ρ·H

  선형 준동형(linearly homomorphic):
    Commit(v₁, ρ₁) + Commit(v₂, ρ₂) = Commit(v₁ + v₂, ρ₁ + ρ₂)
    c · Commit(v, ρ)                = Commit(c·v, c·ρ)

  폴딩은 이 성질을 이용해 커밋먼트를 열지 않고도 L + r·R 을 계산한다.

**생성원 유도**:
  setup은 난수원에서 256비트 시드를 뽑아 hash_to_group(시드 ‖ i)로
  생성원을 만든다. 같은 난수원 상태면 같은 키가 나온다 (결정론적 setup).

사용 예시:
    >>> scheme = PedersenCommitment(BN254)
    >>> key = scheme.setup(rng, 4)
    >>> C = scheme.commit(key, [FR(1), FR(2), FR(3), FR(4)], FR(7))
"""

from sangria.errors import CommitmentLengthError, ConfigurationError
from sangria.field import default_rng, int_to_limbs, same_field


class CommitKey:
    """길이 length의 벡터를 커밋하기 위한 생성원 묶음."""

    def __init__(self, group, generators, blinding_generator):
        self.group = group
        self.generators = list(generators)
        self.blinding_generator = blinding_generator

    @property
    def length(self):
        return len(self.generators)

    def __eq__(self, other):
        if not isinstance(other, CommitKey):
            return NotImplemented
        return (
            self.group is other.group
            and self.generators == other.generators
            and self.blinding_generator == other.blinding_generator
        )

    def __repr__(self):
        return f"CommitKey({self.group.name}, length={self.length})"


class Commitment:
    """그룹 원소 하나를 감싼 커밋먼트 값.

    +, -, 스칼라 *, == 연산을 그룹 연산으로 위임한다.
    """

    __hash__ = None

    def __init__(self, group, element):
        self.group = group
        self.element = element

    @classmethod
    def zero(cls, group):
        """항등원 커밋먼트 (영벡터를 블라인딩 0으로 커밋한 값)."""
        return cls(group, group.identity)

    def _check_group(self, other):
        if not isinstance(other, Commitment) or other.group is not self.group:
            raise ConfigurationError(
                f"서로 다른 그룹의 커밋먼트는 결합할 수 없습니다: {self.group} / {other!r}"
            )

    def __add__(self, other):
        self._check_group(other)
        return Commitment(self.group, self.group.add(self.element, other.element))

    def __neg__(self):
        return Commitment(self.group, self.group.neg(self.element))

    def __sub__(self, other):
        self._check_group(other)
        return self + (-other)

    def __mul__(self, scalar):
        return Commitment(self.group, self.group.mul(self.element, scalar))

    __rmul__ = __mul__

    def __eq__(self, other):
        if not isinstance(other, Commitment):
            return NotImplemented
        return other.group is self.group and self.group.eq(self.element, other.element)

    def to_integers(self):
        return self.group.to_integers(self.element)

    def to_bytes(self):
        """결정론적 직렬화: 좌표(또는 원소)를 고정 폭 빅엔디안으로 이어붙인다."""
        width = (self.group.element_bits + 7) // 8
        return b"".join(v.to_bytes(width, "big") for v in self.to_integers())

    def transcript_encoding(self, field):
        """field 원소 리스트로의 단사 인코딩.

        각 좌표를 element_bits 비트 폭의 림으로 쪼개므로 길이가 고정되고,
        좌표 필드가 field보다 커도 정보가 잘리지 않는다.
        """
        encoded = []
        for v in self.to_integers():
            encoded.extend(int_to_limbs(v, self.group.element_bits, field))
        return encoded

    def __repr__(self):
        return f"Commitment({self.group.name}, {self.to_integers()})"


class PedersenCommitment:
    """그룹 group 위의 Pedersen 벡터 커밋먼트 스킴.

    커밋되는 벡터의 필드는 group.scalar_field (그룹 위수의 필드)이다.
    """

    def __init__(self, group):
        self.group = group

    @property
    def field(self):
        return self.group.scalar_field

    def setup(self, rng=None, length=0):
        """길이 length의 벡터를 위한 커밋 키를 만든다.

        Args:
            rng: getrandbits를 지원하는 난수원
            length: 커밋할 벡터 길이

        Returns:
            CommitKey
        """
        if length < 0:
            raise CommitmentLengthError(f"커밋 키 길이는 음수일 수 없습니다: {length}")
        rng = rng or default_rng()
        seed = rng.getrandbits(256).to_bytes(32, "big")
        generators = [
            self.group.hash_to_group(seed + b"G" + i.to_bytes(4, "big"))
            for i in range(length)
        ]
        blinding_generator = self.group.hash_to_group(seed + b"H")
        return CommitKey(self.group, generators, blinding_generator)

    def commit(self, key, vector, blinding):
        """Commit(v, ρ) = Σ vᵢ·Gᵢ + ρ·H.

        Raises:
            CommitmentLengthError: len(vector) != key.length
            ConfigurationError: 키의 그룹이나 벡터 원소의 필드가 이 스킴과 다를 때
        """
        if key.group is not self.group:
            raise ConfigurationError(f"{key!r}는 {self.group!r}의 키가 아닙니다")
        if len(vector) != key.length:
            raise CommitmentLengthError(
                f"벡터 길이 {len(vector)}가 커밋 키 길이 {key.length}와 다릅니다"
            )
        for value in vector:
            if not same_field(type(value), self.field):
                raise ConfigurationError(
                    f"{type(value).__name__} 원소는 {self.field.__name__} 위에서 커밋할 수 없습니다"
                )

        # 0인 항은 msm이 건너뛴다 (슬랙 벡터 등은 대부분 0)
        element = self.group.msm(
            [*key.generators, key.blinding_generator], [*vector, blinding]
        )
        return Commitment(self.group, element)

    def __repr__(self):
        return f"PedersenCommitment({self.group!r})"
