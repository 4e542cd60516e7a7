"""
Sangria Fiat-Shamir Transcript
================================

2-move 대화식 폴딩 프로토콜을 비대화식으로 바꾸기 위한 Fiat-Shamir 해싱.

**폴딩 프로토콜의 대화**:
  - Prover가 교차항 커밋먼트 T를 보내면
  - Verifier가 랜덤 챌린지 r을 보낸다

  비대화식 버전에서는 두 당사자가 같은 데이터를 같은 순서로 흡수한 뒤
  트랜스크립트에서 r을 직접 짜낸다(squeeze).

**흡수 순서 (고정)**:
  1. domain_separator, round_constants  (SpongeParameters, 생성 시 흡수)
  2. verifier_key
  3. left_instance
  4. right_instance
  5. prover_message (T)
  → r 하나를 squeeze

**인코딩**:
  - 모든 값은 (레이블 길이, 레이블, 원소 개수, 원소들) 형태로 흡수하므로
    경계가 모호하지 않다 (서로 다른 입력이 같은 바이트열이 되지 않음).
  - 필드 원소는 필드 크기에 맞춘 고정 폭 빅엔디안 바이트열.
  - 커밋먼트는 transcript_encoding(field)로 얻은 고정 길이 림 리스트.
  - 폴딩 대상 타입은 append_to_transcript(transcript, label)을 구현한다.

사용 예시:
    >>> params = SpongeParameters.generate(FR, rng)
    >>> t = Transcript(params)
    >>> t.append_commitment(b"T", T)
    >>> r = t.challenge_scalar(b"r")
"""

import hashlib

from sangria.errors import ConfigurationError
from sangria.field import default_rng, random_element, same_field, to_field


DEFAULT_DOMAIN_SEPARATOR = b"sangria-relaxed-plonk-nifs"
DEFAULT_ROUNDS = 8


def short_challenge(m, bits):
    """m의 비트로 만든 짧은 챌린지 2^(bits+1) + 1 + 2·m.

    부호 자릿수 d_j = 2·b_j - 1 (j < bits)과 맨 위 두 자릿수 +1로 쓰면
    r = 2^(bits+1) + 2^bits + Σ d_j·2^j 이다.
    """
    return (1 << (bits + 1)) + 1 + 2 * m


class SpongeParameters:
    """setup 시점에 고정되는 트랜스크립트 상수.

    속성:
        field: 챌린지가 속하는 필드
        domain_separator: 프로토콜 식별 바이트열
        round_constants: 트랜스크립트 초기 상태에 흡수되는 필드 원소들
            (값이 바뀌면 모든 챌린지가 바뀐다)
        challenge_bits: None이면 챌린지는 필드 전체에서 뽑는다. 정수 c이면
            r = 2^(c+1) + 1 + 2·m (0 <= m < 2^c) 꼴의 짧은 홀수 챌린지를 만든다.
            부호 자릿수 c + 2개로 쓰이므로 회로 안의 스칼라곱이 싸다.
    """

    def __init__(self, field, domain_separator, round_constants, challenge_bits=None):
        if challenge_bits is not None and not (
            1 <= challenge_bits <= field.field_modulus.bit_length() - 3
        ):
            raise ConfigurationError(
                f"챌린지 비트 수 {challenge_bits}가 {field.__name__}에 맞지 않습니다"
            )
        self.field = field
        self.domain_separator = bytes(domain_separator)
        self.round_constants = [to_field(field, c) for c in round_constants]
        self.challenge_bits = challenge_bits

    @classmethod
    def generate(cls, field, rng=None, domain_separator=DEFAULT_DOMAIN_SEPARATOR,
                 rounds=DEFAULT_ROUNDS, challenge_bits=None):
        rng = rng or default_rng()
        constants = [random_element(field, rng) for _ in range(rounds)]
        return cls(field, domain_separator, constants, challenge_bits)

    def __eq__(self, other):
        if not isinstance(other, SpongeParameters):
            return NotImplemented
        return (
            same_field(self.field, other.field)
            and self.domain_separator == other.domain_separator
            and self.round_constants == other.round_constants
            and self.challenge_bits == other.challenge_bits
        )

    def __repr__(self):
        return (
            f"SpongeParameters({self.field.__name__}, {self.domain_separator!r}, "
            f"rounds={len(self.round_constants)}, challenge_bits={self.challenge_bits})"
        )


class Transcript:
    """SHA-256 기반 Fiat-Shamir 트랜스크립트.

    해시 입력을 누적하여 결정론적이면서 예측 불가능한 챌린지를 만든다.
    Prover와 Verifier가 동일한 순서로 데이터를 추가하면
    동일한 챌린지가 생성된다.

    속성:
        parameters: SpongeParameters
        state: 현재까지 누적된 해시 입력 바이트열
    """

    def __init__(self, parameters):
        self.parameters = parameters
        self.state = bytearray()
        self._append_bytes(b"domain_separator", parameters.domain_separator)
        self.append_scalars(b"round_constants", parameters.round_constants)

    @property
    def field(self):
        return self.parameters.field

    @property
    def _scalar_width(self):
        return (self.field.field_modulus.bit_length() + 7) // 8

    def _append_bytes(self, label, data):
        self.state.extend(len(label).to_bytes(4, "big"))
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(8, "big"))
        self.state.extend(data)

    def append_scalar(self, label, scalar):
        """트랜스크립트 필드의 원소 하나를 추가한다."""
        self.append_scalars(label, [scalar])

    def append_scalars(self, label, scalars):
        """필드 원소 리스트를 추가한다. 원소 개수가 함께 흡수된다.

        Raises:
            ConfigurationError: 원소가 트랜스크립트 필드에 속하지 않을 때
        """
        width = self._scalar_width
        data = bytearray(len(scalars).to_bytes(8, "big"))
        for s in scalars:
            if not same_field(type(s), self.field):
                raise ConfigurationError(
                    f"{type(s).__name__} 원소는 {self.field.__name__} 트랜스크립트에 흡수할 수 없습니다"
                )
            data.extend(int(s).to_bytes(width, "big"))
        self._append_bytes(label, bytes(data))

    def append_commitment(self, label, commitment):
        """커밋먼트를 림 인코딩으로 추가한다."""
        self.append_scalars(label, commitment.transcript_encoding(self.field))

    def append_commitments(self, label, commitments):
        self._append_bytes(label + b"/len", len(commitments).to_bytes(8, "big"))
        for i, c in enumerate(commitments):
            self.append_commitment(label + b"/" + str(i).encode(), c)

    def absorb(self, label, value):
        """append_to_transcript를 구현한 임의의 값을 흡수한다."""
        value.append_to_transcript(self, label)

    def squeeze(self, label, count=1):
        """count개의 0이 아닌 챌린지 원소를 짜낸다.

        SHA-256 두 번(512비트)을 필드 크기로 축소하므로 편향은 무시할 수 있다.
        축소 결과가 0이면 상태를 갱신하고 다시 뽑는다.
        challenge_bits가 있으면 하위 c비트만 써서 짧은 챌린지로 만든다 (항상 0이 아님).
        """
        p = self.field.field_modulus
        bits = self.parameters.challenge_bits
        challenges = []
        while len(challenges) < count:
            self.state.extend(label)
            h = (
                hashlib.sha256(bytes(self.state) + b"\x00").digest()
                + hashlib.sha256(bytes(self.state) + b"\x01").digest()
            )
            # 챌린지를 상태에 추가 (체이닝: 다음 챌린지에 영향)
            self.state.extend(h)
            if bits is not None:
                value = short_challenge(int.from_bytes(h, "big") % (1 << bits), bits)
            else:
                value = int.from_bytes(h, "big") % p
            if value != 0:
                challenges.append(self.field(value))
        return challenges

    def challenge_scalar(self, label):
        """트랜스크립트로부터 챌린지 스칼라 하나를 생성한다."""
        return self.squeeze(label, 1)[0]
