"""
MiMC-7 스펀지 해시 (회로 친화 해시)
=====================================

IVC 단계 인스턴스의 공개 입력 해시에 쓰인다. 같은 값을 회로 밖(네이티브)과
회로 안(게이트)에서 모두 계산할 수 있어야 하므로 SHA-256 대신 곱셈만으로
이루어진 MiMC-7 치환을 쓴다.

**치환** (키 0):
    x ← (x + c_i)^7,  i = 0 .. rounds-1

  라운드 상수 c_i는 고정 시드에서 SHA-256을 연쇄해 얻고 필드 크기로 축소한다.

**스펀지**:
    state ← perm(state + m)   (메시지 원소마다)
  초기 상태는 도메인 태그 해시이고, 원소 개수가 고정된 입력만 해시한다.

**라운드 하나의 게이트 (4개)**:
  | # | 제약                          | 셀렉터                           |
  |---|-------------------------------|----------------------------------|
  | 0 | t2 = (x + c)²                 | q_M=1, q_L=q_R=c, q_C=c², q_O=-1 |
  | 1 | t4 = t2·t2                    | 곱셈                             |
  | 2 | t6 = t4·t2                    | 곱셈                             |
  | 3 | t7 = t6·x + c·t6 = t6·(x + c) | q_M=1, q_L=c, q_O=-1             |
"""

import hashlib
from functools import lru_cache

from sangria.circuit import Gate
from sangria.field import to_field


DOMAIN_TAG = b"sangria-ivc-mimc7"


@lru_cache(maxsize=None)
def _constants(modulus, rounds):
    constants = []
    seed = DOMAIN_TAG
    for i in range(rounds):
        seed = hashlib.sha256(seed + i.to_bytes(4, "big")).digest()
        constants.append(int.from_bytes(seed, "big") % modulus)
    return tuple(constants)


def round_constants(field, rounds):
    """field 위의 라운드 상수 rounds개."""
    return [field(c) for c in _constants(field.field_modulus, rounds)]


def initial_state(field):
    digest = hashlib.sha256(DOMAIN_TAG + b"/state").digest()
    return field(int.from_bytes(digest, "big"))


def permute(field, x, rounds):
    x = to_field(field, x)
    for c in round_constants(field, rounds):
        x = (x + c) ** 7
    return x


def hash_elements(field, values, rounds):
    """값 리스트의 MiMC-7 스펀지 해시 (field 원소)."""
    state = initial_state(field)
    for value in values:
        state = permute(field, state + to_field(field, value), rounds)
    return state


# ─────────────────────────────────────────────────────────────────────
# 회로 안 해시
# ─────────────────────────────────────────────────────────────────────

def permute_cells(builder, x, rounds):
    """셀 x에 치환을 적용하는 게이트 4·rounds개를 추가하고 출력 셀을 돌려준다."""
    field = builder.field
    for c in round_constants(field, rounds):
        shifted = builder.value(x) + c
        t2 = builder.variable(shifted ** 2)
        builder.add_gate(Gate(field, c, c, -1, 1, c * c), x, x, t2)
        t4 = builder.mul(t2, t2)
        t6 = builder.mul(t4, t2)
        t7 = builder.variable(builder.value(t6) * shifted)
        builder.add_gate(Gate(field, c, 0, -1, 1, 0), t6, x, t7)
        x = t7
    return x


def hash_cells(builder, cells, rounds):
    """셀 리스트의 스펀지 해시. hash_elements와 같은 값을 만든다.

    원소마다 흡수 게이트 1개와 치환 게이트 4·rounds개가 든다.
    """
    state = None
    for cell in cells:
        if state is None:
            absorbed = builder.add_constant(cell, initial_state(builder.field))
        else:
            absorbed = builder.add(state, cell)
        state = permute_cells(builder, absorbed, rounds)
    return state
