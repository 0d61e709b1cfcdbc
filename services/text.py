# services/text.py
import math
import re
import unicodedata

from . import config

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def generate_slug(text: str) -> str:
    """
    제목/이름 → URL 용 slug.
    - NFKD 분해 후 ASCII 로 변환 (é → e)
    - 소문자, 영숫자 이외 구간은 '-' 하나로
    - 앞뒤 '-' 제거
    """
    s = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", s.strip().lower()).strip("-")


def count_words(content: str) -> int:
    return len([w for w in _WHITESPACE.split((content or "").strip()) if w])


def calculate_reading_time(content: str) -> int:
    """단어 수 / 200 올림, 최소 1분"""
    return max(1, math.ceil(count_words(content) / config.WORDS_PER_MINUTE))
