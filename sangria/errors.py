"""
Sangria 오류 타입
==================

모든 오류는 호출자의 결함(회로 기술, 키, 입력 데이터 사이의 결정론적
불일치)을 나타내므로 재시도하지 않고 그대로 전파한다.

  - IndexOutOfBounds: 셀렉터/열/행/커밋먼트 인덱스가 유효 범위 밖
  - ConfigurationError: 회로 크기, 커밋 키 길이, 필드가 서로 맞지 않음
"""


class SangriaError(Exception):
    """Sangria 폴딩 스킴의 기본 오류."""


class IndexOutOfBounds(SangriaError, IndexError):
    """요청한 인덱스가 유효한 열/행 위치가 아닐 때 (i < 0 또는 i >= 길이)."""

    def __init__(self, index, length, what="index"):
        self.index = index
        self.length = length
        super().__init__(f"{what} {index}이(가) 범위를 벗어났습니다 (길이 {length})")


class ConfigurationError(SangriaError, ValueError):
    """회로, 키, 인스턴스 사이의 크기/필드 불일치."""


class CommitmentLengthError(ConfigurationError):
    """커밋할 벡터 길이가 커밋 키의 길이와 다를 때."""


def check_index(index, length, what="index"):
    """0 <= index < length 가 아니면 IndexOutOfBounds를 던진다."""
    # bool은 int의 하위 타입이지만 인덱스로 받지 않는다
    if isinstance(index, bool) or not isinstance(index, int) or index < 0 or index >= length:
        raise IndexOutOfBounds(index, length, what)
    return index
