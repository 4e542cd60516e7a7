"""
배선 복사 제약 순열 (Copy-Constraint Permutation)
===================================================

확장 행(extended row) 위의 3m개 배선 위치에 순열 σ를 정의하여
"같은 값이어야 하는 배선"을 하나의 사이클로 묶는다.

**배선 위치 번호**:
  위치 = 열 · m + 행   (열 0: a, 1: b, 2: c)

  | 위치 범위    | 배선 |
  |--------------|------|
  | 0 .. m-1     | a    |
  | m .. 2m-1    | b    |
  | 2m .. 3m-1   | c    |

**사이클 구성**:
  같은 값이어야 하는 위치들의 집합(동치류)마다
  p₀ → p₁ → ... → p_k → p₀ 순환을 만든다.
  동치류는 union-find로 합치므로 여러 제약이 겹쳐도 사이클이 쪼개지지 않는다.

**만족 조건**:
  모든 위치 p에 대해 z[p] == z[σ(p)]  (z는 이어붙인 배선 값 a ‖ b ‖ c)
  폴딩은 배선에 대해 선형이므로 두 만족 트레이스의 선형 결합도 이 조건을 만족한다.
"""

from sangria.errors import ConfigurationError


class DisjointSet:
    """경로 압축 union-find."""

    def __init__(self, size=0):
        self.parent = list(range(size))

    def add(self):
        self.parent.append(len(self.parent))
        return len(self.parent) - 1

    def find(self, x):
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x, y):
        rx, ry = self.find(x), self.find(y)
        if rx != ry:
            # 작은 번호를 대표로 유지 (결정론적 결과)
            if ry < rx:
                rx, ry = ry, rx
            self.parent[ry] = rx
        return rx

    def groups(self):
        """대표 원소 순으로 정렬된 동치류 리스트."""
        classes = {}
        for x in range(len(self.parent)):
            classes.setdefault(self.find(x), []).append(x)
        return [classes[root] for root in sorted(classes)]


def build_permutation(size, classes):
    """위치 동치류들로부터 순열 σ를 만든다.

    Args:
        size: 전체 위치 수 (3m)
        classes: 같은 값이어야 하는 위치들의 리스트들

    Returns:
        list[int]: 길이 size의 순열. 어떤 동치류에도 없는 위치는 고정점.

    예시:
        >>> build_permutation(6, [[0, 4], [1, 2, 5]])
        [4, 2, 5, 3, 0, 1]
    """
    sigma = list(range(size))
    seen = set()
    for positions in classes:
        ordered = sorted(positions)
        for p in ordered:
            if not 0 <= p < size:
                raise ConfigurationError(f"배선 위치 {p}가 범위 [0, {size})를 벗어났습니다")
            if p in seen:
                raise ConfigurationError(f"배선 위치 {p}가 여러 동치류에 속합니다")
            seen.add(p)
        for k, p in enumerate(ordered):
            sigma[p] = ordered[(k + 1) % len(ordered)]
    return sigma


def is_permutation(sigma):
    return sorted(sigma) == list(range(len(sigma)))


def copy_constraints_hold(sigma, a_vals, b_vals, c_vals):
    """모든 위치 p에 대해 z[p] == z[σ(p)] 인지 확인한다."""
    z = list(a_vals) + list(b_vals) + list(c_vals)
    if len(z) != len(sigma):
        raise ConfigurationError(
            f"배선 위치 수 {len(z)}가 순열 길이 {len(sigma)}와 다릅니다"
        )
    return all(z[p] == z[sigma[p]] for p in range(len(sigma)))
