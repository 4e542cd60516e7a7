"""
Sangria 폴딩 데모
===================

실행:
    python -m sangria.example

흐름:
    1. F_97 곱셈 회로 두 개 (L: [2,3,5,7]·2, R: [1,1,2,3]·3)
    2. setup / encode
    3. relax → 폴딩 (교차항, 챌린지)
    4. 폴딩 결과의 relaxed 관계 검사
    5. BN254/Grumpkin 사이클 위의 IVC (z → z³ + z + 5, 3단계)
"""

import random

from sangria import folding, ivc
from sangria.circuit import product_rows
from sangria.config import bn254_grumpkin_cycle, pedersen_config
from sangria.curves import SchnorrGroup
from sangria.field import FR, prime_field
from sangria.folding.cross_term import compute_cross_term
from sangria.ivc.step_circuit import CubicStep


def fold_demo(rng):
    F97 = prime_field(97, "F97")
    config = pedersen_config(SchnorrGroup("schnorr-389", 389, F97))

    # ── 1. 회로 ──
    print("\n[1] F_97 곱셈 회로 구성...")
    circuit, left_x, left_w = product_rows(F97, [2, 3, 5, 7], [2, 2, 2, 2])
    _, right_x, right_w = product_rows(F97, [1, 1, 2, 3], [3, 3, 3, 3])
    print(f"    게이트 수: {circuit.number_of_gates}, 공개 입력 수: {circuit.number_of_public_inputs}")
    print(f"    L.c = {[int(v) for v in left_w.column(2)]}, x = {[int(v) for v in left_x.public_inputs()]}")
    print(f"    R.c = {[int(v) for v in right_w.column(2)]}, x = {[int(v) for v in right_x.public_inputs()]}")

    # ── 2. setup / encode ──
    print("\n[2] setup / encode...")
    pp = folding.setup(config, folding.CircuitInfo.of(circuit), rng)
    pk, vk = folding.encode(pp, circuit, rng)
    print(f"    배선 커밋 키 길이: {pp.commit_key_witness.length}")
    print(f"    셀렉터/슬랙 커밋 키 길이: {pp.commit_key_selectors_and_slack.length}")

    # ── 3. 폴딩 ──
    print("\n[3] 폴딩...")
    left = folding.relax(pp, left_x, left_w, rng)
    right = folding.relax(pp, right_x, right_w, rng)
    cross_term = compute_cross_term(circuit, *left, *right)
    print(f"    교차항 t = {[int(v) for v in cross_term]}")
    instance, witness, T = folding.prover(pk, *left, *right, rng)
    r = folding.derive_challenge(vk, left[0], right[0], T)
    print(f"    챌린지 r = {int(r)}")
    print(f"    u = {int(instance.scaling_factor())}")
    print(f"    a = {[int(v) for v in witness.plonk_witness().column(0)]}")
    print(f"    E = {[int(v) for v in witness.slack_vector()]}")

    # ── 4. 검사 ──
    print("\n[4] 검사...")
    agrees = folding.verifier(vk, left[0], right[0], T) == instance
    satisfied = folding.is_satisfied(pp, circuit, instance, witness)
    print(f"    verifier 인스턴스 일치: {'✓' if agrees else '✗'}")
    print(f"    relaxed 관계 만족: {'✓' if satisfied else '✗'}")
    return agrees and satisfied


# 데모용 작은 사이클: 8비트 챌린지, MiMC 4라운드 (기본값은 128비트, 91라운드)
DEMO_CHALLENGE_BITS = 8
DEMO_HASH_ROUNDS = 4


def ivc_demo(rng, steps=3):
    print(f"\n[5] IVC: z → z³ + z + 5, {steps}단계 (BN254/Grumpkin)...")
    step_circuit = CubicStep()
    cycle = bn254_grumpkin_cycle(DEMO_CHALLENGE_BITS, DEMO_HASH_ROUNDS)
    pp = ivc.setup(cycle, step_circuit, rng)
    pk, vk = ivc.encode(pp, step_circuit, rng)
    print(f"    main 회로: {pk.main_pk.circuit!r}")
    print(f"    helper 회로: {pk.helper_pk.circuit!r}")

    origin = [FR(1)]
    state, proof = origin, None
    for _ in range(steps):
        state, proof = ivc.prove_step(pk, origin, state, proof, rng=rng)
        ok = ivc.verify(vk, origin, state, proof)
        print(f"    단계 {proof.step}: z = {int(state[0])} → 검증 {'✓' if ok else '✗'}")
    return ivc.verify(vk, origin, state, proof)


def main():
    print("=" * 60)
    print("  Sangria Folding Demo")
    print("  relaxed PLONK 폴딩 + 두 곡선 IVC")
    print("=" * 60)

    rng = random.Random(12345)
    folded = fold_demo(rng)
    verified = ivc_demo(rng)

    print("\n" + "=" * 60)
    print(f"  결과: 폴딩 {'성공' if folded else '실패'}, IVC {'성공' if verified else '실패'}")
    print("=" * 60)


if __name__ == "__main__":
    main()
