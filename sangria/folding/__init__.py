"""
Sangria 비대화식 폴딩 스킴 (NIFS)
===================================

두 relaxed PLONK 인스턴스/증인 쌍을 하나로 접는 프로토콜.

**흐름**:
  setup(config, info)        → PublicParameters   (커밋 키, 트랜스크립트 상수)
  encode(pp, circuit)        → (ProverKey, VerifierKey)  (q_C 커밋)
  prover(pk, L, R)           → (폴딩된 인스턴스, 폴딩된 증인, T)
  verifier(vk, L.inst, R.inst, T) → 폴딩된 인스턴스

**Prover 단계**:
  1. 교차항 벡터 t 계산
  2. t를 새 블라인딩으로 커밋 → T (prover 메시지)
  3. 트랜스크립트에 (vk, L, R, T)를 흡수하고 r을 짜낸다
  4. 배선 열과 블라인딩 폴딩: w = w_L + r·w_R
  5. 슬랙 폴딩: E = E_L + r·t + r²·E_R
  6. 인스턴스 폴딩: u, x, W는 선형, Ē = Ē_L + r·T + r²·Ē_R

Verifier는 r을 항상 스스로 다시 유도한다. Prover가 준 챌린지를 받지 않는다.

모든 함수는 명시적 인자만의 순수 함수이다 (세션 상태 없음).

사용 예시:
    >>> pp = setup(config, CircuitInfo(4, 1), rng)
    >>> pk, vk = encode(pp, circuit, rng)
    >>> inst, wit, T = prover(pk, L_inst, L_wit, R_inst, R_wit)
    >>> assert verifier(vk, L_inst, R_inst, T) == inst
"""

import logging

from sangria.errors import ConfigurationError
from sangria.field import random_element, random_nonzero, same_field, zero_vector
from sangria.folding.cross_term import compute_cross_term
from sangria.folding.fold import fold_instances, fold_witnesses
from sangria.permutation import copy_constraints_hold
from sangria.relaxed_plonk import (
    NUM_WITNESS_COLUMNS,
    Q_C,
    RelaxedPLONKInstance,
    RelaxedPLONKWitness,
    extended_wires,
    gate_evaluations,
)
from sangria.transcript import SpongeParameters, Transcript

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# 키 구조체
# ─────────────────────────────────────────────────────────────────────

class CircuitInfo:
    """회로 크기 정보: 게이트 수 n, 공개 입력 수 ℓ."""

    def __init__(self, number_of_gates, number_of_public_inputs):
        if number_of_gates < 0 or number_of_public_inputs < 0:
            raise ConfigurationError(
                f"회로 크기는 음수일 수 없습니다: n={number_of_gates}, ℓ={number_of_public_inputs}"
            )
        self.number_of_gates = number_of_gates
        self.number_of_public_inputs = number_of_public_inputs

    @classmethod
    def of(cls, circuit):
        return cls(circuit.number_of_gates, circuit.number_of_public_inputs)

    def __repr__(self):
        return f"CircuitInfo(n={self.number_of_gates}, ℓ={self.number_of_public_inputs})"


class PublicParameters:
    """setup 결과. 생성 후 읽기 전용.

    속성:
        config: FoldingCommitmentConfig
        number_of_gates: n
        number_of_public_inputs: ℓ
        commit_key_witness: 길이 n 커밋 키 (배선 열)
        commit_key_selectors_and_slack: 길이 n + ℓ + 1 커밋 키 (q_C, E, T)
        transcript_parameters: SpongeParameters
    """

    def __init__(self, config, number_of_gates, number_of_public_inputs,
                 commit_key_witness, commit_key_selectors_and_slack,
                 transcript_parameters):
        self.config = config
        self.number_of_gates = number_of_gates
        self.number_of_public_inputs = number_of_public_inputs
        self.commit_key_witness = commit_key_witness
        self.commit_key_selectors_and_slack = commit_key_selectors_and_slack
        self.transcript_parameters = transcript_parameters

    @property
    def field(self):
        return self.config.field

    @property
    def number_of_rows(self):
        return self.number_of_gates + self.number_of_public_inputs + 1

    def __repr__(self):
        return (
            f"PublicParameters({self.field.__name__}, n={self.number_of_gates}, "
            f"ℓ={self.number_of_public_inputs})"
        )


class VerifierKey:
    """q_C 커밋먼트와 트랜스크립트 상수."""

    def __init__(self, selector_c_commitment, transcript_parameters):
        self.selector_c_commitment = selector_c_commitment
        self.transcript_parameters = transcript_parameters

    def append_to_transcript(self, transcript, label):
        transcript.append_commitment(label + b"/q_C", self.selector_c_commitment)

    def __eq__(self, other):
        if not isinstance(other, VerifierKey):
            return NotImplemented
        return (
            self.selector_c_commitment == other.selector_c_commitment
            and self.transcript_parameters == other.transcript_parameters
        )

    __hash__ = None


class ProverKey:
    """회로, 공개 파라미터, 검증키, q_C 블라인딩."""

    def __init__(self, circuit, public_parameters, verifier_key,
                 selector_c_commit_randomness):
        self.circuit = circuit
        self.public_parameters = public_parameters
        self.verifier_key = verifier_key
        self.selector_c_commit_randomness = selector_c_commit_randomness


# ─────────────────────────────────────────────────────────────────────
# setup / encode
# ─────────────────────────────────────────────────────────────────────

def setup(config, info, rng=None):
    """커밋 키 두 개와 트랜스크립트 상수를 만든다.

    같은 난수원 상태에서는 같은 결과가 나온다.
    """
    n = info.number_of_gates
    ell = info.number_of_public_inputs
    commit_key_witness = config.witness_scheme.setup(rng, n)
    commit_key_selectors = config.selector_scheme.setup(rng, n + ell + 1)
    transcript_parameters = SpongeParameters.generate(
        config.field, rng, challenge_bits=config.challenge_bits
    )
    logger.debug("folding setup: field=%s n=%d ell=%d", config.field.__name__, n, ell)
    return PublicParameters(
        config, n, ell, commit_key_witness, commit_key_selectors, transcript_parameters
    )


def _check_circuit(pp, circuit):
    if not same_field(circuit.field, pp.field):
        raise ConfigurationError(
            f"회로 필드 {circuit.field.__name__}가 설정 필드 {pp.field.__name__}와 다릅니다"
        )
    if (
        circuit.number_of_gates != pp.number_of_gates
        or circuit.number_of_public_inputs != pp.number_of_public_inputs
    ):
        raise ConfigurationError(
            f"{circuit!r}의 크기가 공개 파라미터 {pp!r}와 다릅니다"
        )


def encode(pp, circuit, rng=None):
    """q_C를 새 블라인딩으로 커밋하여 (ProverKey, VerifierKey)를 만든다.

    Raises:
        ConfigurationError: 회로 크기/필드가 pp와 다를 때
        IndexOutOfBounds: 셀렉터 열이 5개보다 적을 때
    """
    _check_circuit(pp, circuit)
    q_c = circuit.selector(Q_C)
    r_c = random_element(pp.field, rng)
    commitment = pp.config.selector_scheme.commit(pp.commit_key_selectors_and_slack, q_c, r_c)
    vk = VerifierKey(commitment, pp.transcript_parameters)
    pk = ProverKey(circuit, pp, vk, r_c)
    return pk, vk


# ─────────────────────────────────────────────────────────────────────
# 트랜스크립트 / 교차항 커밋
# ─────────────────────────────────────────────────────────────────────

def derive_challenge(vk, left_instance, right_instance, cross_term_commitment):
    """(domain_separator, vk, L, R, T) 순서로 흡수하고 r을 짜낸다."""
    transcript = Transcript(vk.transcript_parameters)
    transcript.absorb(b"verifier_key", vk)
    transcript.absorb(b"left_instance", left_instance)
    transcript.absorb(b"right_instance", right_instance)
    transcript.append_commitment(b"cross_term", cross_term_commitment)
    return transcript.challenge_scalar(b"r")


def commit_cross_term(pp, cross_term, hiding):
    return pp.config.selector_scheme.commit(pp.commit_key_selectors_and_slack, cross_term, hiding)


def _check_shapes(pp, plonk_instance, plonk_witness, slack_length, side):
    if not same_field(plonk_instance.field, pp.field) or not same_field(plonk_witness.field, pp.field):
        raise ConfigurationError(f"{side} 쌍의 필드가 {pp.field.__name__}가 아닙니다")
    if plonk_instance.num_rows != pp.number_of_public_inputs:
        raise ConfigurationError(
            f"{side} 인스턴스의 공개 입력 수 {plonk_instance.num_rows}"
            f" != {pp.number_of_public_inputs}"
        )
    if plonk_witness.num_rows != pp.number_of_gates:
        raise ConfigurationError(
            f"{side} 증인의 행 수 {plonk_witness.num_rows} != {pp.number_of_gates}"
        )
    if slack_length != pp.number_of_rows:
        raise ConfigurationError(f"{side} 슬랙 길이 {slack_length} != {pp.number_of_rows}")


def _check_pair(pp, instance, witness, side):
    _check_shapes(
        pp, instance.plonk_instance(), witness.plonk_witness(),
        len(witness.slack_vector()), side,
    )


# ─────────────────────────────────────────────────────────────────────
# prover / verifier
# ─────────────────────────────────────────────────────────────────────

def prover(pk, left_instance, left_witness, right_instance, right_witness, rng=None):
    """두 쌍을 폴딩한다.

    Returns:
        tuple: (folded_instance, folded_witness, T)
    """
    pp = pk.public_parameters
    _check_pair(pp, left_instance, left_witness, "left")
    _check_pair(pp, right_instance, right_witness, "right")

    # ── 1. 교차항 ──
    cross_term = compute_cross_term(
        pk.circuit, left_instance, left_witness, right_instance, right_witness
    )

    # ── 2. 교차항 커밋 (prover 메시지) ──
    cross_term_hiding = random_element(pp.field, rng)
    T = commit_cross_term(pp, cross_term, cross_term_hiding)

    # ── 3. 챌린지 ──
    r = derive_challenge(pk.verifier_key, left_instance, right_instance, T)
    logger.debug("fold challenge r=%d", int(r))

    # ── 4, 5. 증인 폴딩 ──
    folded_witness = fold_witnesses(
        left_witness, right_witness, cross_term, cross_term_hiding, r
    )

    # ── 6. 인스턴스 폴딩 ──
    folded_instance = fold_instances(left_instance, right_instance, T, r)
    return folded_instance, folded_witness, T


def verifier(vk, left_instance, right_instance, cross_term_commitment):
    """r을 다시 유도하고 인스턴스 쪽 폴딩만 수행한다."""
    r = derive_challenge(vk, left_instance, right_instance, cross_term_commitment)
    return fold_instances(left_instance, right_instance, cross_term_commitment, r)


# ─────────────────────────────────────────────────────────────────────
# 관계 검사 / relax
# ─────────────────────────────────────────────────────────────────────

def is_satisfied(pp, circuit, instance, witness):
    """Relaxed PLONK 관계를 검사한다.

    1. 행마다 E_i == u·(q_L·a + q_R·b + q_O·c) + q_M·a·b + u²·q_C
    2. 복사 제약 z[p] == z[σ(p)]
    3. 커밋먼트 열기: W_k == Commit(w_k, ρ_k), Ē == Commit(E, ρ_E)

    Raises:
        ConfigurationError: 회로, 키, 인스턴스 크기가 서로 맞지 않을 때
    """
    _check_circuit(pp, circuit)
    _check_pair(pp, instance, witness, "checked")

    u = instance.scaling_factor()
    a, b, c = extended_wires(circuit, instance.plonk_instance(), witness.plonk_witness(), u)

    if gate_evaluations(circuit, a, b, c, u) != witness.slack_vector():
        logger.debug("relaxed gate equation does not hold")
        return False
    if not copy_constraints_hold(circuit.permutation(), a, b, c):
        logger.debug("copy constraints do not hold")
        return False

    scheme = pp.config.witness_scheme
    for k in range(NUM_WITNESS_COLUMNS):
        column, hiding = witness.witness_column_with_rand(k)
        if scheme.commit(pp.commit_key_witness, column, hiding) != instance.single_witness_commitment(k):
            logger.debug("witness commitment %d does not open", k)
            return False

    slack = pp.config.selector_scheme.commit(
        pp.commit_key_selectors_and_slack, witness.slack_vector(), witness.slack_hiding()
    )
    if slack != instance.slack_commitment():
        logger.debug("slack commitment does not open")
        return False
    return True


def relax(pp, circuit_instance, circuit_witness, rng=None, hidings=None):
    """unrelaxed 트레이스를 trivial relaxed 쌍 (u = 1, E = 0)으로 만든다.

    Args:
        hidings: [ρ_a, ρ_b, ρ_c, ρ_E]. 없으면 0이 아닌 난수로 뽑는다.

    Returns:
        tuple: (RelaxedPLONKInstance, RelaxedPLONKWitness)
    """
    field = pp.field
    if hidings is None:
        hidings = [random_nonzero(field, rng) for _ in range(NUM_WITNESS_COLUMNS + 1)]
    if len(hidings) != NUM_WITNESS_COLUMNS + 1:
        raise ConfigurationError(f"블라인딩은 {NUM_WITNESS_COLUMNS + 1}개여야 합니다")
    hidings = [field(int(h)) for h in hidings]

    _check_shapes(pp, circuit_instance, circuit_witness, pp.number_of_rows, "relaxed")
    witness = RelaxedPLONKWitness.trivial(
        circuit_witness, pp.number_of_rows, hidings[:NUM_WITNESS_COLUMNS], hidings[-1]
    )

    scheme = pp.config.witness_scheme
    commitments = []
    for k in range(NUM_WITNESS_COLUMNS):
        column, hiding = witness.witness_column_with_rand(k)
        commitments.append(scheme.commit(pp.commit_key_witness, column, hiding))
    slack = pp.config.selector_scheme.commit(
        pp.commit_key_selectors_and_slack,
        zero_vector(field, pp.number_of_rows),
        witness.slack_hiding(),
    )
    instance = RelaxedPLONKInstance(circuit_instance, 1, slack, commitments)
    return instance, witness
