"""
폴딩 Flask Blueprint: F_97 곱셈 회로 폴딩 데모
=================================================

작은 필드 F_97과 Schnorr 그룹(Z_389^*의 위수 97 부분군) 위에서
두 곱셈 트레이스를 폴딩하는 과정을 JSON으로 보여준다.

엔드포인트 (4개):
  POST /folding/setup   {"seed": 12345, "gates": 4}
  POST /folding/fold    {"left": {"a": [...], "b": [...]}, "right": {...}}
  GET  /folding/result
  POST /folding/reset
"""

import logging
import random

from flask import Blueprint, jsonify, request
from tinydb import Query

from sangria import folding
from sangria.circuit import product_rows
from sangria.config import pedersen_config
from sangria.curves import SchnorrGroup
from sangria.errors import SangriaError
from sangria.field import prime_field
from sangria.folding.cross_term import compute_cross_term

from folding_serializers import (
    serialize_field, serialize_field_list,
    serialize_commitment,
    serialize_circuit,
    serialize_relaxed_instance,
    serialize_relaxed_witness,
    serialize_public_parameters, deserialize_public_parameters,
    serialize_verifier_key,
    commitment_short,
)

logger = logging.getLogger(__name__)

folding_bp = Blueprint('folding', __name__, url_prefix='/folding')

DATA = Query()

# DB는 app.py에서 주입
DB = None

# 데모 설정: F_97, p = 389 = 4·97 + 1
F97 = prime_field(97, "F97")
GROUP = SchnorrGroup("schnorr-389", 389, F97)
CONFIG = pedersen_config(GROUP)
DEFAULT_SEED = 12345
DEFAULT_GATES = 4


def init_folding_bp(db):
    """app.py에서 DB를 주입받는다."""
    global DB
    DB = db


# ─── DB 헬퍼 ───

def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = DB.search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    DB.upsert({"type": key, "data": data}, DATA.type == key)


def db_remove_prefix(prefix):
    """prefix로 시작하는 모든 키를 삭제한다."""
    DB.remove(DATA.type.test(lambda t: t.startswith(prefix)))


def error(message, status=400):
    return jsonify({"error": message}), status


@folding_bp.errorhandler(SangriaError)
def handle_sangria_error(exc):
    logger.debug("folding request rejected: %s", exc)
    return error(str(exc))


# ─── 요청 파싱 ───

def parse_rows(body, side, gates):
    """{"a": [...], "b": [...]} → (a_vals, b_vals). 값은 F_97로 축소."""
    rows = body.get(side)
    if not isinstance(rows, dict):
        raise ValueError(f"'{side}' 객체가 필요합니다")
    a_vals, b_vals = rows.get("a"), rows.get("b")
    if not isinstance(a_vals, list) or not isinstance(b_vals, list):
        raise ValueError(f"'{side}.a'와 '{side}.b'는 리스트여야 합니다")
    if len(a_vals) != gates or len(b_vals) != gates:
        raise ValueError(f"'{side}'의 행 수는 {gates}이어야 합니다")
    return [int(v) for v in a_vals], [int(v) for v in b_vals]


# ──────────────────────────────────────────────────────────────
# Setup
# ──────────────────────────────────────────────────────────────

@folding_bp.route("/setup", methods=["POST"])
def setup():
    """커밋 키와 트랜스크립트 상수를 만든다."""
    body = request.get_json(silent=True) or {}
    try:
        seed = int(body.get("seed", DEFAULT_SEED))
        gates = int(body.get("gates", DEFAULT_GATES))
    except (TypeError, ValueError):
        return error("seed와 gates는 정수여야 합니다")
    if gates < 1:
        return error("gates는 1 이상이어야 합니다")

    rng = random.Random(seed)
    pp = folding.setup(CONFIG, folding.CircuitInfo(gates, 1), rng)

    db_remove_prefix("folding.")
    db_set("folding.setup", {"seed": seed, "gates": gates})
    db_set("folding.pp", serialize_public_parameters(pp))

    return jsonify({
        "seed": seed,
        "field": 97,
        "group": GROUP.name,
        "number_of_gates": pp.number_of_gates,
        "number_of_public_inputs": pp.number_of_public_inputs,
        "witness_key_length": pp.commit_key_witness.length,
        "selector_key_length": pp.commit_key_selectors_and_slack.length,
    })


# ──────────────────────────────────────────────────────────────
# Fold
# ──────────────────────────────────────────────────────────────

@folding_bp.route("/fold", methods=["POST"])
def fold():
    """두 곱셈 트레이스를 relax 하고 폴딩한다."""
    setup_data = db_get("folding.setup")
    pp_data = db_get("folding.pp")
    if not setup_data or not pp_data:
        return error("먼저 /folding/setup 을 호출하세요", 409)

    pp = deserialize_public_parameters(CONFIG, pp_data)
    body = request.get_json(silent=True) or {}
    try:
        left_rows = parse_rows(body, "left", pp.number_of_gates)
        right_rows = parse_rows(body, "right", pp.number_of_gates)
    except (TypeError, ValueError) as exc:
        return error(str(exc))

    circuit, left_x, left_w = product_rows(F97, *left_rows)
    right_circuit, right_x, right_w = product_rows(F97, *right_rows)
    if circuit != right_circuit:
        return error("두 트레이스의 회로 구조가 다릅니다")

    # setup 시드에서 이어지는 결정론적 난수원
    rng = random.Random(setup_data["seed"] + 1)
    pk, vk = folding.encode(pp, circuit, rng)
    left_instance, left_witness = folding.relax(pp, left_x, left_w, rng)
    right_instance, right_witness = folding.relax(pp, right_x, right_w, rng)

    cross_term = compute_cross_term(
        circuit, left_instance, left_witness, right_instance, right_witness
    )
    folded_instance, folded_witness, T = folding.prover(
        pk, left_instance, left_witness, right_instance, right_witness, rng
    )
    challenge = folding.derive_challenge(vk, left_instance, right_instance, T)
    verified_instance = folding.verifier(vk, left_instance, right_instance, T)

    result = {
        "circuit": serialize_circuit(circuit),
        "verifier_key": serialize_verifier_key(vk),
        "cross_term": serialize_field_list(cross_term),
        "cross_term_commitment": serialize_commitment(T),
        "cross_term_commitment_short": commitment_short(T),
        "challenge": serialize_field(challenge),
        "folded_instance": serialize_relaxed_instance(folded_instance),
        "folded_witness": serialize_relaxed_witness(folded_witness),
        "verifier_agrees": verified_instance == folded_instance,
        "satisfied": folding.is_satisfied(pp, circuit, folded_instance, folded_witness),
    }
    db_set("folding.result", result)
    return jsonify(result)


@folding_bp.route("/result")
def result():
    """마지막 폴딩 결과를 돌려준다."""
    data = db_get("folding.result")
    if data is None:
        return error("폴딩 결과가 없습니다", 404)
    return jsonify(data)


@folding_bp.route("/reset", methods=["POST"])
def reset():
    """저장된 setup과 결과를 지운다."""
    db_remove_prefix("folding.")
    return jsonify({"reset": True})
