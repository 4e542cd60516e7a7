"""
비대화식 폴딩 스킴 테스트.

테스트 대상:
  - setup / encode: 커밋 키 길이, 결정론, 크기/필드/셀렉터 검사
  - relax / is_satisfied: trivial 쌍, 변조된 증인 거부
  - compute_cross_term: E(L + r·R) = E_L + r·T + r²·E_R
  - prover / verifier: 완전성, 챌린지 재유도, 인스턴스 일치
  - 건전성 탐침: 변조된 교차항 커밋먼트로는 만족하는 증인을 만들 수 없다
"""

import random

import pytest

from sangria import folding
from sangria.circuit import product_rows
from sangria.errors import ConfigurationError, IndexOutOfBounds
from sangria.field import FR
from sangria.folding.cross_term import compute_cross_term
from sangria.folding.fold import fold_instances, fold_witnesses
from sangria.pedersen import Commitment
from sangria.permutation import build_permutation
from sangria.relaxed_plonk import (
    NUM_SELECTORS,
    PLONKCircuit,
    PLONKWitness,
    RelaxedPLONKWitness,
    extended_wires,
    gate_evaluations,
)


def _fold_with(pipeline, r, hiding=0):
    """고정 챌린지 r로 L, R을 폴딩한다 (트랜스크립트 없이)."""
    pp, circuit = pipeline["pp"], pipeline["circuit"]
    (l_inst, l_wit), (r_inst, r_wit) = pipeline["left"], pipeline["right"]
    t = compute_cross_term(circuit, l_inst, l_wit, r_inst, r_wit)
    T = folding.commit_cross_term(pp, t, pp.field(hiding))
    inst = fold_instances(l_inst, r_inst, T, r)
    wit = fold_witnesses(l_wit, r_wit, t, pp.field(hiding), r)
    return inst, wit


# ─────────────────────────────────────────────────────────────────────
# setup / encode
# ─────────────────────────────────────────────────────────────────────

class TestSetup:
    """setup, encode 테스트."""

    def test_commit_key_lengths(self, f97_pipeline):
        pp = f97_pipeline["pp"]
        assert pp.commit_key_witness.length == 4
        assert pp.commit_key_selectors_and_slack.length == 6
        assert pp.number_of_rows == 6

    def test_setup_deterministic(self, f97_config):
        info = folding.CircuitInfo(4, 1)
        pp1 = folding.setup(f97_config, info, random.Random(9))
        pp2 = folding.setup(f97_config, info, random.Random(9))
        assert pp1.commit_key_witness == pp2.commit_key_witness
        assert pp1.commit_key_selectors_and_slack == pp2.commit_key_selectors_and_slack
        assert pp1.transcript_parameters == pp2.transcript_parameters

    def test_circuit_info_rejects_negative(self):
        with pytest.raises(ConfigurationError):
            folding.CircuitInfo(-1, 0)

    def test_circuit_info_of(self, f97_pipeline):
        info = folding.CircuitInfo.of(f97_pipeline["circuit"])
        assert (info.number_of_gates, info.number_of_public_inputs) == (4, 1)

    def test_encode_commits_selector_c(self, f97_pipeline):
        pk, vk = f97_pipeline["pk"], f97_pipeline["vk"]
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        expected = pp.config.selector_scheme.commit(
            pp.commit_key_selectors_and_slack,
            circuit.selector(4),
            pk.selector_c_commit_randomness,
        )
        assert vk.selector_c_commitment == expected
        assert pk.verifier_key is vk
        assert pk.circuit is circuit

    def test_encode_size_mismatch(self, f97_pipeline, f97, rng):
        circuit, _, _ = product_rows(f97, [1, 2, 3], [1, 2, 3])
        with pytest.raises(ConfigurationError):
            folding.encode(f97_pipeline["pp"], circuit, rng)

    def test_encode_field_mismatch(self, f97_pipeline, rng):
        circuit, _, _ = product_rows(FR, [1, 2, 3, 4], [1, 2, 3, 4])
        with pytest.raises(ConfigurationError):
            folding.encode(f97_pipeline["pp"], circuit, rng)

    def test_encode_missing_selector(self, f97_pipeline, f97, rng):
        """셀렉터 4개짜리 회로는 q_C 접근에서 IndexOutOfBounds."""
        selectors = [[f97(0)] * 6 for _ in range(NUM_SELECTORS - 1)]
        circuit = PLONKCircuit(f97, selectors, build_permutation(18, []), 1)
        with pytest.raises(IndexOutOfBounds):
            folding.encode(f97_pipeline["pp"], circuit, rng)


# ─────────────────────────────────────────────────────────────────────
# relax / is_satisfied
# ─────────────────────────────────────────────────────────────────────

class TestRelax:
    def test_trivial_pair(self, f97_pipeline, f97):
        inst, wit = f97_pipeline["left"]
        assert inst.scaling_factor() == f97(1)
        assert wit.is_trivial()
        assert len(wit.slack_vector()) == 6
        assert all(int(h) != 0 for h in wit.hiding_randomnesses())

    def test_trivial_pairs_satisfied(self, f97_pipeline):
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        for inst, wit in (f97_pipeline["left"], f97_pipeline["right"]):
            assert folding.is_satisfied(pp, circuit, inst, wit)

    def test_explicit_hidings(self, f97_pipeline, f97):
        pp = f97_pipeline["pp"]
        _, x, w = product_rows(f97, [2, 3, 5, 7], [2, 2, 2, 2])
        inst, wit = folding.relax(pp, x, w, hidings=[1, 2, 3, 4])
        assert wit.hiding_randomnesses() == [f97(1), f97(2), f97(3)]
        assert wit.slack_hiding() == f97(4)
        assert folding.is_satisfied(pp, f97_pipeline["circuit"], inst, wit)

    def test_hiding_count(self, f97_pipeline, f97):
        _, x, w = product_rows(f97, [2, 3, 5, 7], [2, 2, 2, 2])
        with pytest.raises(ConfigurationError):
            folding.relax(f97_pipeline["pp"], x, w, hidings=[1, 2, 3])

    def test_relax_shape_mismatch(self, f97_pipeline, f97, rng):
        _, x, w = product_rows(f97, [2, 3], [2, 2])
        with pytest.raises(ConfigurationError):
            folding.relax(f97_pipeline["pp"], x, w, rng)

    def test_wrong_wire_rejected(self, f97_pipeline, f97):
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        inst, wit = f97_pipeline["left"]
        bad = PLONKWitness(f97, [2, 3, 5, 7], [2, 2, 2, 2], [4, 6, 10, 15])
        tampered = RelaxedPLONKWitness(
            bad, wit.slack_vector(), wit.hiding_randomnesses(), wit.slack_hiding()
        )
        assert not folding.is_satisfied(pp, circuit, inst, tampered)

    def test_copy_constraint_violation_rejected(self, f97_pipeline, f97, rng):
        """모든 게이트는 맞지만 공개 입력이 마지막 곱과 다른 경우."""
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        _, _, w = product_rows(f97, [2, 3, 5, 7], [2, 2, 2, 2])
        _, other_x, _ = product_rows(f97, [2, 3, 5, 8], [2, 2, 2, 2])
        inst, wit = folding.relax(pp, other_x, w, rng)
        assert not folding.is_satisfied(pp, circuit, inst, wit)

    def test_wrong_hiding_rejected(self, f97_pipeline):
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        inst, wit = f97_pipeline["left"]
        hidings = wit.hiding_randomnesses()
        hidings[0] = hidings[0] + pp.field(1)
        tampered = RelaxedPLONKWitness(
            wit.plonk_witness(), wit.slack_vector(), hidings, wit.slack_hiding()
        )
        assert not folding.is_satisfied(pp, circuit, inst, tampered)

    def test_wrong_slack_hiding_rejected(self, f97_pipeline):
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        inst, wit = f97_pipeline["left"]
        tampered = RelaxedPLONKWitness(
            wit.plonk_witness(), wit.slack_vector(), wit.hiding_randomnesses(),
            wit.slack_hiding() + pp.field(1),
        )
        assert not folding.is_satisfied(pp, circuit, inst, tampered)


# ─────────────────────────────────────────────────────────────────────
# 교차항과 폴딩 규칙
# ─────────────────────────────────────────────────────────────────────

class TestCrossTerm:
    """E(L + r·R) = E_L + r·T + r²·E_R"""

    def test_f97_cross_term(self, f97_pipeline):
        (l_inst, l_wit), (r_inst, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        t = compute_cross_term(f97_pipeline["circuit"], l_inst, l_wit, r_inst, r_wit)
        assert [int(v) for v in t] == [1, 2, 3, 4, 0, 0]

    @pytest.mark.parametrize("r", [1, 5, 96])
    def test_cross_term_identity(self, f97_pipeline, f97, r):
        circuit = f97_pipeline["circuit"]
        (l_inst, l_wit), (r_inst, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        t = compute_cross_term(circuit, l_inst, l_wit, r_inst, r_wit)
        r = f97(r)
        u = l_inst.scaling_factor() + r * r_inst.scaling_factor()
        folded_x = l_inst.plonk_instance() + r_inst.plonk_instance() * r
        folded_w = l_wit.plonk_witness() + r_wit.plonk_witness() * r
        a, b, c = extended_wires(circuit, folded_x, folded_w, u)
        expected = [
            el + r * ti + r * r * er
            for el, ti, er in zip(l_wit.slack_vector(), t, r_wit.slack_vector())
        ]
        assert gate_evaluations(circuit, a, b, c, u) == expected


class TestLinearity:
    """relaxed 인스턴스/증인 대수 법칙."""

    def test_instance_addition_commutes(self, f97_pipeline):
        a, _ = f97_pipeline["left"]
        b, _ = f97_pipeline["right"]
        assert a + b == b + a

    def test_instance_scalar_distributes(self, f97_pipeline, f97):
        a, _ = f97_pipeline["left"]
        c1, c2 = f97(13), f97(90)
        assert a * (c1 + c2) == a * c1 + a * c2

    def test_witness_scalar_distributes(self, f97_pipeline, f97):
        _, w = f97_pipeline["left"]
        c1, c2 = f97(40), f97(70)
        assert w * (c1 + c2) == w * c1 + w * c2

    def test_witness_addition_commutes(self, f97_pipeline):
        _, a = f97_pipeline["left"]
        _, b = f97_pipeline["right"]
        assert a + b == b + a


class TestFoldRules:
    @pytest.mark.parametrize("r", [1, 5, 96])
    def test_fold_with_itself(self, f97_pipeline, f97, r):
        """만족하는 trivial 쌍을 자기 자신과 폴딩해도 관계가 유지된다."""
        pp, circuit = f97_pipeline["pp"], f97_pipeline["circuit"]
        inst, wit = f97_pipeline["left"]
        t = compute_cross_term(circuit, inst, wit, inst, wit)
        T = folding.commit_cross_term(pp, t, f97(2))
        folded_inst = fold_instances(inst, inst, T, f97(r))
        folded_wit = fold_witnesses(wit, wit, t, f97(2), f97(r))
        assert folding.is_satisfied(pp, circuit, folded_inst, folded_wit)

    def test_bn254_fold_with_itself_full_width_challenge(self, bn254_pipeline):
        """BN254 위에서 254비트 폭의 무작위 r로 자기 자신과 폴딩한다."""
        pp, circuit = bn254_pipeline["pp"], bn254_pipeline["circuit"]
        inst, wit = bn254_pipeline["left"]
        r = FR(random.Random(254).getrandbits(254))
        t = compute_cross_term(circuit, inst, wit, inst, wit)
        T = folding.commit_cross_term(pp, t, FR(7))
        folded_inst = fold_instances(inst, inst, T, r)
        folded_wit = fold_witnesses(wit, wit, t, FR(7), r)
        assert folding.is_satisfied(pp, circuit, folded_inst, folded_wit)
        # 자기 폴딩은 u' = (1 + r)·u
        assert folded_inst.scaling_factor() == inst.scaling_factor() * (FR(1) + r)

    @pytest.mark.parametrize("r", [1, 5, 96])
    def test_completeness_fixed_challenge(self, f97_pipeline, f97, r):
        inst, wit = _fold_with(f97_pipeline, f97(r), hiding=3)
        assert folding.is_satisfied(f97_pipeline["pp"], f97_pipeline["circuit"], inst, wit)

    def test_folded_linear_parts(self, f97_pipeline, f97):
        (l_inst, l_wit), (r_inst, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        inst, wit = _fold_with(f97_pipeline, f97(5))
        assert inst.scaling_factor() == f97(6)
        assert inst.witness_commitments() == (l_inst + r_inst * f97(5)).witness_commitments()
        assert wit.hiding_randomnesses() == [
            hl + f97(5) * hr
            for hl, hr in zip(l_wit.hiding_randomnesses(), r_wit.hiding_randomnesses())
        ]

    def test_slack_commitment_includes_cross_term(self, f97_pipeline, f97, schnorr_group):
        (l_inst, _), (r_inst, _) = f97_pipeline["left"], f97_pipeline["right"]
        zero = Commitment.zero(schnorr_group)
        folded = fold_instances(l_inst, r_inst, zero, f97(5))
        expected = l_inst.slack_commitment() + r_inst.slack_commitment() * f97(25)
        assert folded.slack_commitment() == expected

    def test_fold_witness_length_mismatch(self, f97_pipeline, f97):
        (_, l_wit), (_, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        with pytest.raises(ConfigurationError):
            fold_witnesses(l_wit, r_wit, [f97(0)] * 5, f97(0), f97(2))


# ─────────────────────────────────────────────────────────────────────
# prover / verifier
# ─────────────────────────────────────────────────────────────────────

class TestProverVerifier:
    """Fiat-Shamir 폴딩 프로토콜 테스트."""

    def test_completeness(self, f97_pipeline, rng):
        pk, pp, circuit = f97_pipeline["pk"], f97_pipeline["pp"], f97_pipeline["circuit"]
        inst, wit, _ = folding.prover(pk, *f97_pipeline["left"], *f97_pipeline["right"], rng)
        assert folding.is_satisfied(pp, circuit, inst, wit)
        assert not wit.is_trivial()

    def test_verifier_matches_prover(self, f97_pipeline, rng):
        pk, vk = f97_pipeline["pk"], f97_pipeline["vk"]
        (l_inst, l_wit), (r_inst, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        inst, _, T = folding.prover(pk, l_inst, l_wit, r_inst, r_wit, rng)
        assert folding.verifier(vk, l_inst, r_inst, T) == inst

    def test_challenge_is_rederived(self, f97_pipeline, f97, rng):
        """u = 1 + r 이므로 폴딩된 u에서 prover가 쓴 r을 읽을 수 있다."""
        pk, vk = f97_pipeline["pk"], f97_pipeline["vk"]
        (l_inst, l_wit), (r_inst, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        inst, _, T = folding.prover(pk, l_inst, l_wit, r_inst, r_wit, rng)
        r = folding.derive_challenge(vk, l_inst, r_inst, T)
        assert inst.scaling_factor() == f97(1) + r
        assert folding.derive_challenge(vk, l_inst, r_inst, T) == r

    def test_challenge_depends_on_order(self, bn254_pipeline):
        vk = bn254_pipeline["vk"]
        (l_inst, _), (r_inst, _) = bn254_pipeline["left"], bn254_pipeline["right"]
        T = l_inst.slack_commitment()
        assert folding.derive_challenge(vk, l_inst, r_inst, T) != \
            folding.derive_challenge(vk, r_inst, l_inst, T)

    def test_repeated_folding(self, f97_pipeline, rng):
        """폴딩 결과를 다시 새 쌍과 폴딩해도 관계가 유지된다."""
        pk, pp, circuit = f97_pipeline["pk"], f97_pipeline["pp"], f97_pipeline["circuit"]
        inst, wit, _ = folding.prover(pk, *f97_pipeline["left"], *f97_pipeline["right"], rng)
        for _ in range(3):
            inst, wit, _ = folding.prover(pk, inst, wit, *f97_pipeline["right"], rng)
            assert folding.is_satisfied(pp, circuit, inst, wit)

    def test_prover_shape_mismatch(self, f97_pipeline, rng):
        (l_inst, l_wit), (r_inst, r_wit) = f97_pipeline["left"], f97_pipeline["right"]
        short = RelaxedPLONKWitness(
            r_wit.plonk_witness(), r_wit.slack_vector()[:5],
            r_wit.hiding_randomnesses(), r_wit.slack_hiding(),
        )
        with pytest.raises(ConfigurationError):
            folding.prover(f97_pipeline["pk"], l_inst, l_wit, r_inst, short, rng)

    def test_bn254_completeness(self, bn254_pipeline):
        pk, vk = bn254_pipeline["pk"], bn254_pipeline["vk"]
        pp, circuit = bn254_pipeline["pp"], bn254_pipeline["circuit"]
        (l_inst, l_wit), (r_inst, r_wit) = bn254_pipeline["left"], bn254_pipeline["right"]
        inst, wit, T = folding.prover(pk, l_inst, l_wit, r_inst, r_wit, random.Random(1))
        assert folding.is_satisfied(pp, circuit, inst, wit)
        assert folding.verifier(vk, l_inst, r_inst, T) == inst

    def test_bn254_large_challenge(self, bn254_pipeline):
        r = FR(FR.field_modulus - 2)
        inst, wit = _fold_with(bn254_pipeline, r, hiding=17)
        assert folding.is_satisfied(bn254_pipeline["pp"], bn254_pipeline["circuit"], inst, wit)


# ─────────────────────────────────────────────────────────────────────
# 건전성 탐침
# ─────────────────────────────────────────────────────────────────────

class TestSoundness:
    """교차항을 바꾼 T'로 폴딩하면 만족하는 증인을 만들 수 없다.

    F_97 에서는 챌린지 충돌 확률이 1/97 이므로 BN254 위에서 검사한다.
    """

    @pytest.fixture(scope="class")
    def tampered(self, bn254_pipeline):
        pp, vk, circuit = bn254_pipeline["pp"], bn254_pipeline["vk"], bn254_pipeline["circuit"]
        (l_inst, l_wit), (r_inst, r_wit) = bn254_pipeline["left"], bn254_pipeline["right"]
        t = compute_cross_term(circuit, l_inst, l_wit, r_inst, r_wit)
        bad_t = [t[0] + FR(1)] + t[1:]
        hiding = FR(5)
        T_bad = folding.commit_cross_term(pp, bad_t, hiding)
        r = folding.derive_challenge(vk, l_inst, r_inst, T_bad)
        inst = folding.verifier(vk, l_inst, r_inst, T_bad)
        return {"t": t, "bad_t": bad_t, "hiding": hiding, "r": r, "instance": inst}

    def test_honest_witness_fails(self, bn254_pipeline, tampered):
        (_, l_wit), (_, r_wit) = bn254_pipeline["left"], bn254_pipeline["right"]
        wit = fold_witnesses(l_wit, r_wit, tampered["t"], tampered["hiding"], tampered["r"])
        assert not folding.is_satisfied(
            bn254_pipeline["pp"], bn254_pipeline["circuit"], tampered["instance"], wit
        )

    def test_tampered_witness_fails(self, bn254_pipeline, tampered):
        (_, l_wit), (_, r_wit) = bn254_pipeline["left"], bn254_pipeline["right"]
        wit = fold_witnesses(l_wit, r_wit, tampered["bad_t"], tampered["hiding"], tampered["r"])
        assert not folding.is_satisfied(
            bn254_pipeline["pp"], bn254_pipeline["circuit"], tampered["instance"], wit
        )
