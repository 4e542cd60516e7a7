"""
교차항 (Cross Term)
=====================

두 relaxed 트레이스 L, R을 챌린지 r로 결합할 때 게이트 방정식에서
r¹ 계수로 나타나는 항을 계산한다.

**유도** (행 i, lin(w) = q_L·a + q_R·b + q_O·c):
  E(L + r·R) = (u_L + r·u_R)·(lin_L + r·lin_R)
             + q_M·(a_L + r·a_R)·(b_L + r·b_R)
             + (u_L + r·u_R)²·q_C

             = E_L + r·T + r²·E_R

  T_i = u_L·lin_R + u_R·lin_L + q_M·(a_L·b_R + a_R·b_L) + 2·u_L·u_R·q_C

  E_L, E_R은 각각 L, R의 게이트 평가값(= 각자의 슬랙 벡터)이다.
"""

from sangria.relaxed_plonk import NUM_SELECTORS, extended_wires


def compute_cross_term(circuit, left_instance, left_witness, right_instance, right_witness):
    """교차항 벡터 T (길이 = 확장 행 수 m).

    Raises:
        ConfigurationError: 인스턴스/증인 크기가 회로와 맞지 않을 때
        IndexOutOfBounds: 셀렉터가 5개보다 적을 때
    """
    u_l = left_instance.scaling_factor()
    u_r = right_instance.scaling_factor()
    a_l, b_l, c_l = extended_wires(
        circuit, left_instance.plonk_instance(), left_witness.plonk_witness(), u_l
    )
    a_r, b_r, c_r = extended_wires(
        circuit, right_instance.plonk_instance(), right_witness.plonk_witness(), u_r
    )
    q_l, q_r, q_o, q_m, q_c = (circuit.selector(i) for i in range(NUM_SELECTORS))
    two_uu = u_l * u_r * 2

    cross = []
    for i in range(circuit.number_of_rows):
        lin_l = q_l[i] * a_l[i] + q_r[i] * b_l[i] + q_o[i] * c_l[i]
        lin_r = q_l[i] * a_r[i] + q_r[i] * b_r[i] + q_o[i] * c_r[i]
        cross.append(
            u_l * lin_r
            + u_r * lin_l
            + q_m[i] * (a_l[i] * b_r[i] + a_r[i] * b_l[i])
            + two_uu * q_c[i]
        )
    return cross
