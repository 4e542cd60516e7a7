"""
인스턴스/증인 폴딩 규칙
=========================

챌린지 r에 대해:

  u  = u_L + r·u_R
  x  = x_L + r·x_R
  W_k = W_L,k + r·W_R,k            (k = a, b, c)
  Ē  = Ē_L + r·T + r²·Ē_R          (교차항 커밋먼트가 r¹ 자리에 들어간다)

  w_k = w_L,k + r·w_R,k
  E  = E_L + r·t + r²·E_R
  ρ_k = ρ_L,k + r·ρ_R,k
  ρ_E = ρ_E,L + r·ρ_t + r²·ρ_E,R

커밋먼트의 준동형성 덕분에 폴딩된 커밋먼트는 폴딩된 벡터/블라인딩을 연다.
"""

from sangria.errors import ConfigurationError
from sangria.field import to_field
from sangria.relaxed_plonk import RelaxedPLONKInstance, RelaxedPLONKWitness


def fold_instances(left, right, cross_term_commitment, challenge):
    """Verifier 쪽 폴딩: 증인 없이 인스턴스만 결합한다."""
    r = to_field(left.field, challenge)
    # 선형 부분 (x, u, W)은 인스턴스 대수로 계산하고 슬랙만 교차항을 포함해 다시 만든다
    linear = left + right * r
    slack = (
        left.slack_commitment()
        + cross_term_commitment * r
        + right.slack_commitment() * (r * r)
    )
    return RelaxedPLONKInstance(
        linear.plonk_instance(),
        linear.scaling_factor(),
        slack,
        linear.witness_commitments(),
    )


def fold_witnesses(left, right, cross_term, cross_term_hiding, challenge):
    """Prover 쪽 폴딩: 배선, 슬랙, 블라인딩을 결합한다."""
    r = to_field(left.field, challenge)
    r2 = r * r
    e_l, e_r = left.slack_vector(), right.slack_vector()
    if not len(e_l) == len(e_r) == len(cross_term):
        raise ConfigurationError(
            f"슬랙/교차항 길이가 다릅니다: {len(e_l)}, {len(cross_term)}, {len(e_r)}"
        )
    slack = [el + r * t + r2 * er for el, t, er in zip(e_l, cross_term, e_r)]
    hidings = [
        hl + r * hr
        for hl, hr in zip(left.hiding_randomnesses(), right.hiding_randomnesses())
    ]
    slack_hiding = (
        left.slack_hiding()
        + r * to_field(left.field, cross_term_hiding)
        + r2 * right.slack_hiding()
    )
    return RelaxedPLONKWitness(
        left.plonk_witness() + right.plonk_witness() * r,
        slack,
        hidings,
        slack_hiding,
    )
