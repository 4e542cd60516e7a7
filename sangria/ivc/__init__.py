"""
두 곡선 IVC 드라이버 (Incrementally Verifiable Computation)
=============================================================

단계 함수 F를 반복 적용하며, 각 단계를 폴딩으로 누적 증명에 접어 넣는다.

**왜 곡선 두 개인가?**
  폴딩 verifier는 커밋먼트(곡선 점)에 대한 연산을 한다. 점의 좌표는
  곡선의 기저 필드에 있으므로, 스칼라 필드 F_r 위의 회로는 F_r 곡선 점의
  연산을 네이티브로 검사할 수 없다. 그래서 스칼라/기저 필드가 서로
  뒤바뀐 곡선 쌍(BN254/Grumpkin) 위에 폴딩 두 개를 나란히 돌린다.

  | 면     | 회로 필드 | 커밋먼트 곡선 | 회로가 접는 것                         |
  |--------|-----------|---------------|----------------------------------------|
  | main   | FR        | BN254         | F, main 스칼라(u, x), helper 커밋먼트  |
  | helper | FQ        | Grumpkin      | helper 스칼라(u, x), main 커밋먼트     |

**단계 인스턴스의 공개 입력** (면마다 3개):
    x = [r_main, r_helper, h]
    h = H(i, z_0, z_i, U_i)   (MiMC-7, helper 면은 z 없이)

  U_i는 단계 i의 running 인스턴스 쌍이다. 각 면의 해시는 자기 회로가
  네이티브로 계산한 값만 담는다: 자기 면 running의 스칼라 (u, x)와
  짝 면 running의 커밋먼트 좌표.

**단계 i의 증강 회로** (면마다):
  1. h_prev = H(i - 1, z_0, z_in, U_(i-1)) 를 다시 계산하고,
     기준 단계가 아니면 latest_(i-1)의 해시 슬롯과 같음을 강제한다
  2. main 면: i - 1 == 0 이면 z_in == z_0
  3. 자기 면 스칼라 폴딩: u' = u + r, x' = x + r·x_latest
  4. 짝 면 커밋먼트 폴딩: W' = W + r·W_latest, Ē' = Ē + r·(T + r·Ē_latest)
     (r의 비트로 회로 안에서 스칼라곱)
  5. main 면: z_out = F(z_in)
  6. h = H(i, z_0, z_out, U_i) 를 공개 입력으로 노출

**검증** (단계 n):
  1. 면마다 latest의 해시 슬롯 == H(n, z_0, z_n, running)
  2. n = 1: running == base case
     n ≥ 2: running == fold(이전 running, 이전 latest, T) 를 네이티브로 다시
     계산하고, 다시 유도한 두 챌린지가 두 면 latest의 챌린지 슬롯과 같은지
  3. 면마다 latest가 fresh(u = 1, E = 0)인지 확인하고, running과 latest를
     다시 폴딩하여 (교차항 재계산, 챌린지 재유도) 관계 만족 여부를 검사

사용 예시:
    >>> pp = setup(bn254_grumpkin_cycle(), CubicStep(), rng)
    >>> pk, vk = encode(pp, CubicStep(), rng)
    >>> z1, proof = prove_step(pk, [FR(3)], [FR(3)], None)
    >>> z2, proof = prove_step(pk, [FR(3)], z1, proof)
    >>> verify(vk, [FR(3)], z2, proof)   # True
"""

import logging

from sangria import folding
from sangria.circuit import CircuitBuilder, Gate
from sangria.errors import ConfigurationError
from sangria.field import random_element, to_field
from sangria.folding.cross_term import compute_cross_term
from sangria.folding.fold import fold_witnesses
from sangria.ivc.fold_check import (
    allocate_point,
    challenge_bit_cells,
    fold_commitments,
    instance_points,
)
from sangria.ivc.mimc import hash_cells, hash_elements
from sangria.transcript import short_challenge

logger = logging.getLogger(__name__)

SIDES = ("main", "helper")

# 단계 인스턴스 공개 입력 배치
CHALLENGE_SLOTS = {"main": 0, "helper": 1}
HASH_SLOT = 2
PUBLIC_INPUTS = 3


def _other(name):
    return "helper" if name == "main" else "main"


# ─────────────────────────────────────────────────────────────────────
# 키와 증명 구조체
# ─────────────────────────────────────────────────────────────────────

class PublicParameters:
    """사이클 설정, 단계 회로, 면별 폴딩 공개 파라미터."""

    def __init__(self, config, step_circuit, main, helper):
        self.config = config
        self.step_circuit = step_circuit
        self.main = main
        self.helper = helper

    def side(self, name):
        return self.main if name == "main" else self.helper


class VerifierKey:
    """면별 폴딩 검증키와 회로."""

    def __init__(self, public_parameters, main_vk, helper_vk, main_circuit, helper_circuit):
        self.public_parameters = public_parameters
        self.main_vk = main_vk
        self.helper_vk = helper_vk
        self.main_circuit = main_circuit
        self.helper_circuit = helper_circuit

    def side(self, name):
        if name == "main":
            return self.main_vk, self.main_circuit
        return self.helper_vk, self.helper_circuit


class ProverKey:
    def __init__(self, public_parameters, main_pk, helper_pk, verifier_key):
        self.public_parameters = public_parameters
        self.main_pk = main_pk
        self.helper_pk = helper_pk
        self.verifier_key = verifier_key

    def side(self, name):
        return self.main_pk if name == "main" else self.helper_pk


class HalfCycleProof:
    """한 면의 (최신 단계 쌍, 누적 쌍)과 누적 쌍을 만든 마지막 폴딩.

    previous_running_instance, previous_step_instance, cross_term_commitment는
    running = fold(previous_running, previous_step, T) 를 verifier가 다시
    계산하는 데 쓴다. 단계 1에서는 모두 None이다.
    """

    def __init__(self, latest_step_instance, latest_step_witness,
                 running_instance, running_witness,
                 previous_running_instance=None, previous_step_instance=None,
                 cross_term_commitment=None):
        self.latest_step_instance = latest_step_instance
        self.latest_step_witness = latest_step_witness
        self.running_instance = running_instance
        self.running_witness = running_witness
        self.previous_running_instance = previous_running_instance
        self.previous_step_instance = previous_step_instance
        self.cross_term_commitment = cross_term_commitment

    def previous_fold(self):
        return (
            self.previous_running_instance,
            self.previous_step_instance,
            self.cross_term_commitment,
        )

    def __eq__(self, other):
        if not isinstance(other, HalfCycleProof):
            return NotImplemented
        return (
            self.latest_step_instance == other.latest_step_instance
            and self.latest_step_witness == other.latest_step_witness
            and self.running_instance == other.running_instance
            and self.running_witness == other.running_witness
            and self.previous_fold() == other.previous_fold()
        )

    __hash__ = None


class IVCProof:
    """단계 번호와 두 면의 HalfCycleProof."""

    def __init__(self, step, main_half_proof, helper_half_proof):
        self.step = step
        self.main_half_proof = main_half_proof
        self.helper_half_proof = helper_half_proof

    def side(self, name):
        return self.main_half_proof if name == "main" else self.helper_half_proof

    def __eq__(self, other):
        if not isinstance(other, IVCProof):
            return NotImplemented
        return (
            self.step == other.step
            and self.main_half_proof == other.main_half_proof
            and self.helper_half_proof == other.helper_half_proof
        )

    __hash__ = None

    def __repr__(self):
        return f"IVCProof(step={self.step})"


class StepInputs:
    """증강 회로 한 면의 비공개 입력 (단계 i).

    속성:
        step: 직전 단계 번호 i - 1
        running_scalars: 자기 면 running_(i-1)의 [u, x_0, x_1, x_2]
        latest_public_inputs: 자기 면 latest_(i-1)의 공개 입력
        paired_running: 짝 면 running_(i-1)의 점 [W_a, W_b, W_c, Ē]
        paired_latest: 짝 면 latest_(i-1)의 점 [W_a, W_b, W_c, Ē]
        paired_cross_term: 짝 면 폴딩의 교차항 커밋먼트 점
        challenges: {"main": r_main, "helper": r_helper} (정수)
    """

    def __init__(self, step, running_scalars, latest_public_inputs,
                 paired_running, paired_latest, paired_cross_term, challenges):
        self.step = step
        self.running_scalars = list(running_scalars)
        self.latest_public_inputs = list(latest_public_inputs)
        self.paired_running = list(paired_running)
        self.paired_latest = list(paired_latest)
        self.paired_cross_term = paired_cross_term
        self.challenges = {name: int(challenges[name]) for name in SIDES}


# ─────────────────────────────────────────────────────────────────────
# 단계 인스턴스 해시
# ─────────────────────────────────────────────────────────────────────

def _state(field, values, arity):
    if len(values) != arity:
        raise ConfigurationError(f"상태 길이 {len(values)} != arity {arity}")
    return [to_field(field, v) for v in values]


def instance_hash(config, name, step, origin_state, state, running):
    """name 면 latest 인스턴스의 해시 슬롯 값 H(i, z_0, z_i, U_i).

    Args:
        running: {"main": 단계 i의 main running 인스턴스, "helper": ...}
    """
    values = [step]
    if name == "main":
        values += [*origin_state, *state]
    group = config.paired(name).witness_scheme.group
    for point in instance_points(running[_other(name)]):
        values += group.to_integers(point)
    own = running[name]
    values.append(own.scaling_factor())
    values += own.public_inputs()
    return hash_elements(config.side(name).field, values, config.hash_rounds)


# ─────────────────────────────────────────────────────────────────────
# 증강 회로 (augmented circuits)
# ─────────────────────────────────────────────────────────────────────

def _zero_product(builder, x, y):
    """x·y = 0 (게이트 1개)."""
    builder.add_gate(Gate(builder.field, 0, 0, 0, 1, 0), x, y, builder.variable(0))


def _is_zero(builder, x):
    """x == 0 이면 1, 아니면 0인 셀 (게이트 2개).

        x·z = 0,  x·inv + z - 1 = 0
    """
    field = builder.field
    value = builder.value(x)
    z = builder.variable(1 if int(value) == 0 else 0)
    inv = builder.variable(0 if int(value) == 0 else field(1) / value)
    _zero_product(builder, x, z)
    builder.add_gate(Gate(field, 0, 0, 1, 1, -1), x, inv, z)
    return z


def _complement(builder, bit):
    """1 - bit (게이트 1개)."""
    out = builder.variable(1 - builder.value(bit))
    builder.add_gate(Gate(builder.field, -1, 0, -1, 0, 1), bit, builder.variable(0), out)
    return out


def _coordinates(points):
    return [c for point in points for c in point]


def _augmented(config, name, inputs, step_circuit=None, origin_state=(), z_in=(), witness=None):
    """name 면 증강 회로의 트레이스.

    Returns:
        tuple: ((circuit, instance, witness), z_out)
    """
    field = config.side(name).field
    paired = config.paired(name)
    b = paired.witness_scheme.group.b
    rounds = config.hash_rounds
    builder = CircuitBuilder(field)

    # TODO: 챌린지는 verifier가 마지막 폴딩에 대해서만 다시 유도한다. 폴딩
    # 트랜스크립트를 MiMC 스펀지로 옮겨 중간 단계의 r도 회로 안에서 유도하기.
    challenges = {s: builder.public_input(to_field(field, inputs.challenges[s])) for s in SIDES}

    # ── 단계 번호, 기준 단계 ──
    i_prev = builder.variable(inputs.step)
    i_cur = builder.add_constant(i_prev, 1)
    is_base = _is_zero(builder, i_prev)
    not_base = _complement(builder, is_base)

    z_0 = [builder.variable(v) for v in origin_state]
    z_in = [builder.variable(v) for v in z_in]
    for start, current in zip(z_0, z_in):
        _zero_product(builder, is_base, builder.sub(current, start))

    # ── 직전 단계 해시 ──
    running_points = [allocate_point(builder, p, b) for p in inputs.paired_running]
    scalars = [builder.variable(v) for v in inputs.running_scalars]
    h_prev = hash_cells(
        builder, [i_prev, *z_0, *z_in, *_coordinates(running_points), *scalars], rounds
    )
    latest = [builder.variable(v) for v in inputs.latest_public_inputs]
    _zero_product(builder, not_base, builder.sub(latest[HASH_SLOT], h_prev))

    # ── 자기 면 스칼라 폴딩 ──
    r_own = challenges[name]
    u_out = builder.add(scalars[0], r_own)
    x_out = [builder.add(x, builder.mul(r_own, l)) for x, l in zip(scalars[1:], latest)]

    # ── 짝 면 커밋먼트 폴딩 ──
    bits = challenge_bit_cells(builder, challenges[_other(name)], paired.challenge_bits)
    latest_points = [allocate_point(builder, p, b) for p in inputs.paired_latest]
    cross_term = allocate_point(builder, inputs.paired_cross_term, b)
    outputs = fold_commitments(builder, running_points, latest_points, cross_term, bits)

    # ── 단계 함수와 새 해시 ──
    z_out = step_circuit.synthesize(builder, z_in, witness) if step_circuit else []
    h_cur = hash_cells(
        builder, [i_cur, *z_0, *z_out, *_coordinates(outputs), u_out, *x_out], rounds
    )
    builder.assert_equal(h_cur, builder.public_input(builder.value(h_cur)))
    return builder.build(), [builder.value(c) for c in z_out]


def main_trace(config, step_circuit, origin_state, z_in, inputs, witness=None):
    """main 면 트레이스.

    Returns:
        tuple: ((circuit, instance, witness), z_out)
    """
    field = config.main.field
    arity = step_circuit.arity
    return _augmented(
        config, "main", inputs, step_circuit,
        _state(field, origin_state, arity), _state(field, z_in, arity), witness,
    )


def helper_trace(config, inputs):
    """helper 면 트레이스."""
    trace, _ = _augmented(config, "helper", inputs)
    return trace


def _traces(config, step_circuit, origin_state, z_in, inputs, witness=None):
    """면별 (circuit, instance, witness)와 z_out. inputs[name]은 name 면의 StepInputs."""
    main, z_out = main_trace(config, step_circuit, origin_state, z_in, inputs["main"], witness)
    helper = helper_trace(config, inputs["helper"])
    return {"main": main, "helper": helper}, z_out


def _base_challenges(config):
    return {name: short_challenge(0, config.side(name).challenge_bits) for name in SIDES}


def _dummy_inputs(config):
    """기준 단계 회로용 고정 입력: 모든 점은 생성원, 챌린지는 가장 작은 값."""
    inputs = {}
    for name in SIDES:
        g = config.paired(name).witness_scheme.group.generator
        inputs[name] = StepInputs(
            0, [1, 0, 0, 0], [0] * PUBLIC_INPUTS, [g] * 4, [g] * 4, g, _base_challenges(config)
        )
    return inputs


def _first_step_inputs(config, base):
    """단계 1 입력: 폴딩 출력이 base case running과 같아지도록 고른다.

    짝 면 latest와 T를 생성원 G로 두면 출력은 W + r·G, Ē + r·(r + 1)·G 이므로
    running 점은 base - r·G, base - r·(r + 1)·G 이다.
    """
    challenges = _base_challenges(config)
    inputs = {}
    for name in SIDES:
        other = _other(name)
        group = config.paired(name).witness_scheme.group
        g = group.generator
        r = challenges[other]
        target = instance_points(base[other][0])
        running_points = [group.add(p, group.neg(group.mul(g, r))) for p in target[:3]]
        running_points.append(group.add(target[3], group.neg(group.mul(g, r * (r + 1)))))
        own = base[name][0]
        scalars = [own.scaling_factor() - challenges[name], *own.public_inputs()]
        inputs[name] = StepInputs(
            0, scalars, [0] * PUBLIC_INPUTS, running_points, [g] * 4, g, challenges
        )
    return inputs


def _next_step_inputs(proof, previous, challenges):
    """단계 i ≥ 2 입력: 직전 증명의 running/latest와 이번 폴딩의 T, r."""
    inputs = {}
    for name in SIDES:
        half = proof.side(name)
        paired = proof.side(_other(name))
        running = half.running_instance
        inputs[name] = StepInputs(
            proof.step,
            [running.scaling_factor(), *running.public_inputs()],
            half.latest_step_instance.public_inputs(),
            instance_points(paired.running_instance),
            instance_points(paired.latest_step_instance),
            previous[_other(name)][2].element,
            challenges,
        )
    return inputs


# ─────────────────────────────────────────────────────────────────────
# setup / encode / base case
# ─────────────────────────────────────────────────────────────────────

def _check_cycle(config):
    for name in SIDES:
        if config.side(name).challenge_bits is None:
            raise ConfigurationError(f"IVC의 {name} 면에는 짧은 챌린지(challenge_bits)가 필요합니다")


def setup(config, step_circuit, rng=None):
    """단계 회로 구조로부터 두 면의 폴딩 공개 파라미터를 만든다."""
    _check_cycle(config)
    zeros = [0] * step_circuit.arity
    traces, _ = _traces(config, step_circuit, zeros, zeros, _dummy_inputs(config))
    sides = {}
    for name in SIDES:
        circuit = traces[name][0]
        sides[name] = folding.setup(config.side(name), folding.CircuitInfo.of(circuit), rng)
        logger.debug("ivc setup %s: %r", name, circuit)
    return PublicParameters(config, step_circuit, sides["main"], sides["helper"])


def encode(pp, step_circuit, rng=None):
    """두 면의 회로를 만들고 폴딩 키를 생성한다."""
    if type(step_circuit) is not type(pp.step_circuit) or step_circuit.arity != pp.step_circuit.arity:
        raise ConfigurationError(f"{step_circuit!r}는 {pp.step_circuit!r}로 setup되지 않았습니다")
    zeros = [0] * step_circuit.arity
    traces, _ = _traces(pp.config, step_circuit, zeros, zeros, _dummy_inputs(pp.config))
    keys = {}
    for name in SIDES:
        keys[name] = folding.encode(pp.side(name), traces[name][0], rng)
    vk = VerifierKey(
        pp, keys["main"][1], keys["helper"][1], traces["main"][0], traces["helper"][0]
    )
    pk = ProverKey(pp, keys["main"][0], keys["helper"][0], vk)
    return pk, vk


def base_case(pp, origin_state):
    """origin_state에서의 기준 running 쌍 (면별).

    고정 입력으로 증강 회로를 한 번 돌린 트레이스를 모든 블라인딩을 1로 하여
    relax 한다. 결정론적이다.

    Returns:
        dict: {"main": (instance, witness), "helper": (instance, witness)}
    """
    traces, _ = _traces(
        pp.config, pp.step_circuit, origin_state, origin_state, _dummy_inputs(pp.config)
    )
    pairs = {}
    for name in SIDES:
        side_pp = pp.side(name)
        _, instance, witness = traces[name]
        pairs[name] = folding.relax(
            side_pp, instance, witness, hidings=[side_pp.field(1)] * 4
        )
    return pairs


# ─────────────────────────────────────────────────────────────────────
# prove_step
# ─────────────────────────────────────────────────────────────────────

def prove_step(pk, origin_state, current_state, current_proof, witness=None, rng=None):
    """한 단계를 진행하고 다음 IVC 증명을 만든다.

    Args:
        pk: IVC ProverKey
        origin_state: z_0
        current_state: z_i (current_proof가 증명하는 상태)
        current_proof: IVCProof 또는 None (첫 단계)
        witness: 단계 회로의 비공개 증인
        rng: 블라인딩 난수원

    Returns:
        tuple: (z_{i+1}, IVCProof)

    Raises:
        ConfigurationError: 상태가 증명과 맞지 않거나 트레이스 회로가 키와 다를 때
    """
    pp = pk.public_parameters
    field = pp.main.field
    arity = pp.step_circuit.arity

    # ── 1. 누적 쌍 폴딩 ──
    if current_proof is None:
        if _state(field, current_state, arity) != _state(field, origin_state, arity):
            raise ConfigurationError("첫 단계의 current_state는 origin_state와 같아야 합니다")
        step = 1
        running = base_case(pp, origin_state)
        previous = {name: (None, None, None) for name in SIDES}
        inputs = _first_step_inputs(pp.config, running)
    else:
        _check_current_state(pp, origin_state, current_state, current_proof)
        step = current_proof.step + 1
        running, previous, challenges = {}, {}, {}
        for name in SIDES:
            half = current_proof.side(name)
            side_pk = pk.side(name)
            folded_instance, folded_witness, T = folding.prover(
                side_pk,
                half.running_instance, half.running_witness,
                half.latest_step_instance, half.latest_step_witness,
                rng,
            )
            challenges[name] = folding.derive_challenge(
                side_pk.verifier_key, half.running_instance, half.latest_step_instance, T
            )
            running[name] = (folded_instance, folded_witness)
            previous[name] = (half.running_instance, half.latest_step_instance, T)
        inputs = _next_step_inputs(current_proof, previous, challenges)

    # ── 2. 새 단계 트레이스 ──
    traces, next_state = _traces(
        pp.config, pp.step_circuit, origin_state, current_state, inputs, witness
    )

    # ── 3. relax (fresh 블라인딩) ──
    half_proofs = {}
    for name in SIDES:
        circuit, instance, plonk_witness = traces[name]
        if circuit != pk.side(name).circuit:
            raise ConfigurationError(f"{name} 트레이스 회로가 키의 회로와 다릅니다")
        latest = folding.relax(pp.side(name), instance, plonk_witness, rng)
        half_proofs[name] = HalfCycleProof(*latest, *running[name], *previous[name])

    logger.debug("ivc step %d: %s -> %s", step,
                 [int(v) for v in current_state], [int(v) for v in next_state])
    return next_state, IVCProof(step, half_proofs["main"], half_proofs["helper"])


def _check_current_state(pp, origin_state, current_state, proof):
    arity = pp.step_circuit.arity
    field = pp.main.field
    running = {name: proof.side(name).running_instance for name in SIDES}
    expected = instance_hash(
        pp.config, "main", proof.step,
        _state(field, origin_state, arity), _state(field, current_state, arity), running,
    )
    if proof.main_half_proof.latest_step_instance.public_inputs()[HASH_SLOT] != expected:
        raise ConfigurationError("current_state가 증명의 마지막 단계 해시와 맞지 않습니다")


# ─────────────────────────────────────────────────────────────────────
# verify
# ─────────────────────────────────────────────────────────────────────

def _refold_satisfied(side_pp, vk, circuit, half):
    """running과 latest를 다시 폴딩하여 관계를 만족하는지 검사한다."""
    latest_instance = half.latest_step_instance
    latest_witness = half.latest_step_witness
    if int(latest_instance.scaling_factor()) != 1 or not latest_witness.is_trivial():
        logger.debug("latest step pair is not fresh")
        return False

    cross_term = compute_cross_term(
        circuit, half.running_instance, half.running_witness,
        latest_instance, latest_witness,
    )
    hiding = random_element(side_pp.field)
    T = folding.commit_cross_term(side_pp, cross_term, hiding)
    folded_instance = folding.verifier(vk, half.running_instance, latest_instance, T)
    r = folding.derive_challenge(vk, half.running_instance, latest_instance, T)
    folded_witness = fold_witnesses(
        half.running_witness, latest_witness, cross_term, hiding, r
    )
    return folding.is_satisfied(side_pp, circuit, folded_instance, folded_witness)


def _last_fold_challenges(vk, proof):
    """면마다 running == fold(이전 running, 이전 latest, T) 이면 다시 유도한 r.

    Returns:
        dict 또는 None: {"main": r_main, "helper": r_helper}, 맞지 않으면 None
    """
    challenges = {}
    for name in SIDES:
        half = proof.side(name)
        side_vk, _ = vk.side(name)
        previous_running, previous_step, T = half.previous_fold()
        if previous_running is None or previous_step is None or T is None:
            logger.debug("%s half proof does not carry its last fold", name)
            return None
        if int(previous_step.scaling_factor()) != 1:
            logger.debug("%s previous step instance is not fresh", name)
            return None
        if folding.verifier(side_vk, previous_running, previous_step, T) != half.running_instance:
            logger.debug("%s running instance is not the fold of the previous pair", name)
            return None
        challenges[name] = int(
            folding.derive_challenge(side_vk, previous_running, previous_step, T)
        )
    return challenges


def verify(vk, origin_state, current_state, proof):
    """IVC 증명을 검증한다.

    Returns:
        bool: 증명이 origin_state에서 current_state까지의 실행을 증명하면 True
    """
    pp = vk.public_parameters
    field = pp.main.field
    arity = pp.step_circuit.arity
    z_0 = _state(field, origin_state, arity)
    z_i = _state(field, current_state, arity)

    if proof is None:
        return z_0 == z_i
    if proof.step < 1:
        return False

    # ── 1. 해시 슬롯: H(n, z_0, z_n, running) ──
    running = {name: proof.side(name).running_instance for name in SIDES}
    for name in SIDES:
        public = proof.side(name).latest_step_instance.public_inputs()
        if len(public) != PUBLIC_INPUTS:
            return False
        if public[HASH_SLOT] != instance_hash(pp.config, name, proof.step, z_0, z_i, running):
            logger.debug("%s latest instance does not hash (step, state, running)", name)
            return False

    # ── 2. 기준 단계 / 마지막 폴딩 ──
    if proof.step == 1:
        base = base_case(pp, origin_state)
        for name in SIDES:
            half = proof.side(name)
            if (half.running_instance, half.running_witness) != base[name]:
                logger.debug("%s running pair is not the base case", name)
                return False
    else:
        challenges = _last_fold_challenges(vk, proof)
        if challenges is None:
            return False
        for name in SIDES:
            public = proof.side(name).latest_step_instance.public_inputs()
            for side, slot in CHALLENGE_SLOTS.items():
                if int(public[slot]) != challenges[side]:
                    logger.debug("%s latest instance carries a %s challenge that was not derived",
                                 name, side)
                    return False

    # ── 3. 면별 재폴딩 ──
    for name in SIDES:
        side_vk, circuit = vk.side(name)
        if not _refold_satisfied(pp.side(name), side_vk, circuit, proof.side(name)):
            logger.debug("%s side does not satisfy the relaxed relation", name)
            return False
    return True
