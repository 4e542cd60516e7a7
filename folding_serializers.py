"""
폴딩 데이터 직렬화/역직렬화 헬퍼
==================================

TinyDB / JSON에 저장 가능한 형태로 폴딩 객체를 변환한다.
필드 원소, 커밋먼트, 커밋 키, 행렬, 회로, relaxed 인스턴스/증인,
공개 파라미터, 검증키, HalfCycleProof, IVCProof 등.

정수는 모두 10진 문자열로 저장한다 (JSON 정수 범위를 넘으므로).
역직렬화 함수는 필드와 그룹을 알려주는 설정(config)을 받는다.
"""

from sangria.folding import PublicParameters, VerifierKey
from sangria.ivc import HalfCycleProof, IVCProof
from sangria.pedersen import CommitKey, Commitment
from sangria.relaxed_plonk import (
    PLONKCircuit,
    PLONKInstance,
    PLONKWitness,
    RelaxedPLONKInstance,
    RelaxedPLONKWitness,
)
from sangria.transcript import SpongeParameters


# ─── 필드 원소 ───

def serialize_field(val):
    """필드 원소 → str(int)"""
    return str(int(val))


def deserialize_field(field, s):
    """str(int) → 필드 원소"""
    return field(int(s))


def serialize_field_list(lst):
    """list[F] → list[str]"""
    return [str(int(v)) for v in lst]


def deserialize_field_list(field, data):
    """list[str] → list[F]"""
    return [field(int(s)) for s in data]


# ─── 그룹 원소 / 커밋먼트 ───

def serialize_element(group, element):
    """그룹 원소 → list[str] (곡선 점의 무한원점은 ["0", "0"])"""
    return [str(v) for v in group.to_integers(element)]


def deserialize_element(group, data):
    return group.from_integers([int(s) for s in data])


def serialize_commitment(commitment):
    return serialize_element(commitment.group, commitment.element)


def deserialize_commitment(group, data):
    return Commitment(group, deserialize_element(group, data))


def serialize_commit_key(key):
    """CommitKey → dict"""
    return {
        "group": key.group.name,
        "generators": [serialize_element(key.group, g) for g in key.generators],
        "blinding_generator": serialize_element(key.group, key.blinding_generator),
    }


def deserialize_commit_key(group, data):
    """dict → CommitKey"""
    if data["group"] != group.name:
        raise ValueError(f"{data['group']} 키를 {group.name} 그룹으로 읽을 수 없습니다")
    return CommitKey(
        group,
        [deserialize_element(group, g) for g in data["generators"]],
        deserialize_element(group, data["blinding_generator"]),
    )


# ─── 행렬 / 회로 ───

def serialize_matrix(matrix):
    """FieldMatrix → 열 리스트"""
    return [serialize_field_list(col) for col in matrix.columns()]


def deserialize_plonk_instance(field, data):
    (public_inputs,) = data
    return PLONKInstance(field, deserialize_field_list(field, public_inputs))


def deserialize_plonk_witness(field, data):
    a, b, c = (deserialize_field_list(field, col) for col in data)
    return PLONKWitness(field, a, b, c)


def serialize_circuit(circuit):
    """PLONKCircuit → dict"""
    return {
        "selectors": [
            serialize_field_list(circuit.selector(i))
            for i in range(circuit.number_of_selectors)
        ],
        "permutation": circuit.permutation(),
        "number_of_public_inputs": circuit.number_of_public_inputs,
    }


def deserialize_circuit(field, data):
    """dict → PLONKCircuit"""
    return PLONKCircuit(
        field,
        [deserialize_field_list(field, col) for col in data["selectors"]],
        data["permutation"],
        data["number_of_public_inputs"],
    )


# ─── Relaxed 인스턴스 / 증인 ───

def serialize_relaxed_instance(instance):
    """RelaxedPLONKInstance → dict"""
    return {
        "public_inputs": serialize_field_list(instance.public_inputs()),
        "scaling_factor": serialize_field(instance.scaling_factor()),
        "slack_commitment": serialize_commitment(instance.slack_commitment()),
        "witness_commitments": [
            serialize_commitment(c) for c in instance.witness_commitments()
        ],
    }


def deserialize_relaxed_instance(config, data):
    """dict → RelaxedPLONKInstance"""
    field = config.field
    witness_group = config.witness_scheme.group
    return RelaxedPLONKInstance(
        PLONKInstance(field, deserialize_field_list(field, data["public_inputs"])),
        deserialize_field(field, data["scaling_factor"]),
        deserialize_commitment(config.selector_scheme.group, data["slack_commitment"]),
        [deserialize_commitment(witness_group, c) for c in data["witness_commitments"]],
    )


def serialize_relaxed_witness(witness):
    """RelaxedPLONKWitness → dict"""
    return {
        "columns": serialize_matrix(witness.plonk_witness()),
        "slack_vector": serialize_field_list(witness.slack_vector()),
        "commitment_hidings": serialize_field_list(witness.hiding_randomnesses()),
        "slack_hiding": serialize_field(witness.slack_hiding()),
    }


def deserialize_relaxed_witness(config, data):
    """dict → RelaxedPLONKWitness"""
    field = config.field
    return RelaxedPLONKWitness(
        deserialize_plonk_witness(field, data["columns"]),
        deserialize_field_list(field, data["slack_vector"]),
        deserialize_field_list(field, data["commitment_hidings"]),
        deserialize_field(field, data["slack_hiding"]),
    )


# ─── 공개 파라미터 / 검증키 ───

def serialize_sponge_parameters(params):
    return {
        "domain_separator": params.domain_separator.hex(),
        "round_constants": serialize_field_list(params.round_constants),
        "challenge_bits": params.challenge_bits,
    }


def deserialize_sponge_parameters(field, data):
    return SpongeParameters(
        field,
        bytes.fromhex(data["domain_separator"]),
        deserialize_field_list(field, data["round_constants"]),
        data.get("challenge_bits"),
    )


def serialize_public_parameters(pp):
    """PublicParameters → dict"""
    return {
        "number_of_gates": pp.number_of_gates,
        "number_of_public_inputs": pp.number_of_public_inputs,
        "commit_key_witness": serialize_commit_key(pp.commit_key_witness),
        "commit_key_selectors_and_slack": serialize_commit_key(
            pp.commit_key_selectors_and_slack
        ),
        "transcript_parameters": serialize_sponge_parameters(pp.transcript_parameters),
    }


def deserialize_public_parameters(config, data):
    """dict → PublicParameters"""
    return PublicParameters(
        config,
        data["number_of_gates"],
        data["number_of_public_inputs"],
        deserialize_commit_key(config.witness_scheme.group, data["commit_key_witness"]),
        deserialize_commit_key(
            config.selector_scheme.group, data["commit_key_selectors_and_slack"]
        ),
        deserialize_sponge_parameters(config.field, data["transcript_parameters"]),
    )


def serialize_verifier_key(vk):
    return {
        "selector_c_commitment": serialize_commitment(vk.selector_c_commitment),
        "transcript_parameters": serialize_sponge_parameters(vk.transcript_parameters),
    }


def deserialize_verifier_key(config, data):
    return VerifierKey(
        deserialize_commitment(config.selector_scheme.group, data["selector_c_commitment"]),
        deserialize_sponge_parameters(config.field, data["transcript_parameters"]),
    )


# ─── IVC 증명 ───

def _optional(convert, value, *context):
    """단계 1 증명의 빈 필드 (None)는 그대로 둔다."""
    if value is None:
        return None
    return convert(*context, value) if context else convert(value)


def serialize_half_cycle_proof(half):
    """HalfCycleProof → dict"""
    return {
        "latest_step_instance": serialize_relaxed_instance(half.latest_step_instance),
        "latest_step_witness": serialize_relaxed_witness(half.latest_step_witness),
        "running_instance": serialize_relaxed_instance(half.running_instance),
        "running_witness": serialize_relaxed_witness(half.running_witness),
        "previous_running_instance": _optional(
            serialize_relaxed_instance, half.previous_running_instance),
        "previous_step_instance": _optional(
            serialize_relaxed_instance, half.previous_step_instance),
        "cross_term_commitment": _optional(serialize_commitment, half.cross_term_commitment),
    }


def deserialize_half_cycle_proof(config, data):
    """dict → HalfCycleProof"""
    return HalfCycleProof(
        deserialize_relaxed_instance(config, data["latest_step_instance"]),
        deserialize_relaxed_witness(config, data["latest_step_witness"]),
        deserialize_relaxed_instance(config, data["running_instance"]),
        deserialize_relaxed_witness(config, data["running_witness"]),
        _optional(deserialize_relaxed_instance, data.get("previous_running_instance"), config),
        _optional(deserialize_relaxed_instance, data.get("previous_step_instance"), config),
        _optional(
            deserialize_commitment, data.get("cross_term_commitment"),
            config.selector_scheme.group,
        ),
    )


def serialize_ivc_proof(proof):
    """IVCProof → dict"""
    return {
        "step": proof.step,
        "main": serialize_half_cycle_proof(proof.main_half_proof),
        "helper": serialize_half_cycle_proof(proof.helper_half_proof),
    }


def deserialize_ivc_proof(cycle_config, data):
    """dict → IVCProof. cycle_config는 CycleConfig."""
    return IVCProof(
        data["step"],
        deserialize_half_cycle_proof(cycle_config.main, data["main"]),
        deserialize_half_cycle_proof(cycle_config.helper, data["helper"]),
    )


# ─── 표시용 헬퍼 ───

def _shorten(s, limit=10):
    if len(s) <= limit:
        return s
    return s[:4] + "..." + s[-4:]


def field_short(val):
    """필드 원소 → 축약 문자열 (응답 표시용)"""
    if val is None:
        return "None"
    return _shorten(str(int(val)))


def commitment_short(commitment):
    """커밋먼트 → 축약 문자열 (응답 표시용)"""
    if commitment.element is None:
        return "∞"
    values = [_shorten(str(v), 8) for v in commitment.to_integers()]
    return "(" + ", ".join(values) + ")"
