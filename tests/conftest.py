import sys
import os
import random

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sangria import folding
from sangria.circuit import product_rows
from sangria.config import pedersen_config
from sangria.curves import BN254, SchnorrGroup
from sangria.field import FR, prime_field


# ── 테스트 상수 ──
F97 = prime_field(97, "F97")
SCHNORR_389 = SchnorrGroup("schnorr-389", 389, F97)

L_A, L_B = [2, 3, 5, 7], [2, 2, 2, 2]
R_A, R_B = [1, 1, 2, 3], [3, 3, 3, 3]


@pytest.fixture
def rng():
    return random.Random(12345)


@pytest.fixture
def f97():
    return F97


@pytest.fixture
def schnorr_group():
    return SCHNORR_389


@pytest.fixture
def f97_config():
    return pedersen_config(SCHNORR_389)


@pytest.fixture(scope="session")
def bn254_config():
    return pedersen_config(BN254)


@pytest.fixture
def f97_pipeline(f97_config, rng):
    """F_97 곱셈 회로 4게이트: setup → encode → relax(L, R)."""
    circuit, left_x, left_w = product_rows(F97, L_A, L_B)
    _, right_x, right_w = product_rows(F97, R_A, R_B)
    pp = folding.setup(f97_config, folding.CircuitInfo(4, 1), rng)
    pk, vk = folding.encode(pp, circuit, rng)
    left = folding.relax(pp, left_x, left_w, rng)
    right = folding.relax(pp, right_x, right_w, rng)
    return {
        "pp": pp,
        "pk": pk,
        "vk": vk,
        "circuit": circuit,
        "left": left,
        "right": right,
    }


@pytest.fixture(scope="session")
def bn254_pipeline(bn254_config):
    """BN254 위의 곱셈 회로 3게이트 (FR)."""
    rng = random.Random(2024)
    circuit, left_x, left_w = product_rows(FR, [3, 5, 7], [11, 13, 17])
    _, right_x, right_w = product_rows(FR, [19, 23, 29], [31, 37, 41])
    pp = folding.setup(bn254_config, folding.CircuitInfo(3, 1), rng)
    pk, vk = folding.encode(pp, circuit, rng)
    left = folding.relax(pp, left_x, left_w, rng)
    right = folding.relax(pp, right_x, right_w, rng)
    return {
        "pp": pp,
        "pk": pk,
        "vk": vk,
        "circuit": circuit,
        "left": left,
        "right": right,
    }
