"""
폴딩 커밋먼트 설정 (Commitment Configuration)
================================================

폴딩 스킴이 사용하는 두 커밋먼트 스킴을 묶은 런타임 설정 객체.

  - witness_scheme:  배선 열(a, b, c)을 커밋
  - selector_scheme: 셀렉터 q_C, 슬랙 벡터 E, 교차항 T를 커밋

설정은 회로마다 한 번 정해지고 setup/encode/prover/verifier에 그대로
전달된다. 두 스킴은 같은 필드 위의 벡터를 커밋해야 한다.

**곡선 사이클 (CycleConfig)**:
  IVC는 두 개의 폴딩 인스턴스를 나란히 돌린다.

    main   : FR 회로, BN254 위의 커밋먼트 (좌표 ∈ FQ)
    helper : FQ 회로, Grumpkin 위의 커밋먼트 (좌표 ∈ FR)

  한쪽의 커밋먼트 좌표는 다른 쪽 회로의 필드 원소이므로, main 폴딩의
  점 덧셈은 helper 회로에서 네이티브로 검사할 수 있다 (그 반대도 마찬가지).
"""

from sangria.curves import BN254, GRUMPKIN
from sangria.errors import ConfigurationError
from sangria.field import same_field
from sangria.pedersen import PedersenCommitment


DEFAULT_CHALLENGE_BITS = 128
DEFAULT_HASH_ROUNDS = 91


class FoldingCommitmentConfig:
    """필드 하나와 두 준동형 커밋먼트 스킴의 묶음.

    Args:
        field: 회로 필드 (커밋되는 벡터의 필드)
        witness_scheme: 배선 열 커밋먼트 스킴
        selector_scheme: 셀렉터/슬랙 커밋먼트 스킴
        challenge_bits: 짧은 폴딩 챌린지의 비트 수 (None이면 필드 전체)
    """

    def __init__(self, field, witness_scheme, selector_scheme, challenge_bits=None):
        for scheme in (witness_scheme, selector_scheme):
            if not same_field(scheme.field, field):
                raise ConfigurationError(
                    f"{scheme!r}는 {field.__name__} 위의 벡터를 커밋하지 않습니다"
                )
        self.field = field
        self.witness_scheme = witness_scheme
        self.selector_scheme = selector_scheme
        self.challenge_bits = challenge_bits

    @property
    def name(self):
        return self.witness_scheme.group.name

    def __repr__(self):
        return (
            f"FoldingCommitmentConfig({self.field.__name__}, "
            f"{self.witness_scheme!r}, {self.selector_scheme!r})"
        )


def pedersen_config(group, challenge_bits=None):
    """group 위의 Pedersen 스킴 두 개로 설정을 만든다."""
    return FoldingCommitmentConfig(
        group.scalar_field, PedersenCommitment(group), PedersenCommitment(group),
        challenge_bits,
    )


class CycleConfig:
    """곡선 사이클 위의 두 폴딩 설정 (main, helper).

    각 설정의 커밋먼트 좌표 필드가 다른 설정의 회로 필드와 같아야 한다.

    속성:
        hash_rounds: 단계 인스턴스 해시 (MiMC-7)의 라운드 수
    """

    SIDES = ("main", "helper")

    def __init__(self, main, helper, hash_rounds=DEFAULT_HASH_ROUNDS):
        for this, other in ((main, helper), (helper, main)):
            for scheme in (this.witness_scheme, this.selector_scheme):
                coordinates = getattr(scheme.group, "base_field", None)
                if coordinates is None or not same_field(coordinates, other.field):
                    raise ConfigurationError(
                        f"{scheme!r}의 좌표 필드가 {other.field.__name__}가 아닙니다"
                    )
        if hash_rounds < 1:
            raise ConfigurationError(f"해시 라운드 수는 1 이상이어야 합니다: {hash_rounds}")
        self.main = main
        self.helper = helper
        self.hash_rounds = hash_rounds

    def side(self, name):
        if name == "main":
            return self.main
        if name == "helper":
            return self.helper
        raise ConfigurationError(f"알 수 없는 사이클 면: {name}")

    def paired(self, name):
        """name 면의 짝 설정 (커밋먼트 좌표를 네이티브로 다루는 쪽)."""
        self.side(name)
        return self.helper if name == "main" else self.main


def bn254_grumpkin_cycle(challenge_bits=DEFAULT_CHALLENGE_BITS, hash_rounds=DEFAULT_HASH_ROUNDS):
    """기본 사이클: main = BN254 (FR 회로), helper = Grumpkin (FQ 회로).

    Args:
        challenge_bits: 두 면 폴딩 챌린지의 비트 수. 회로 안 스칼라곱 하나가
            16·(challenge_bits + 1) 게이트이므로 회로 크기를 좌우한다.
        hash_rounds: 단계 인스턴스 해시의 MiMC-7 라운드 수
    """
    return CycleConfig(
        pedersen_config(BN254, challenge_bits),
        pedersen_config(GRUMPKIN, challenge_bits),
        hash_rounds,
    )
