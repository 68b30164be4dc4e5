# app/utils/auto_space.py
import re

# CJK ideographs, kana and hangul; fullwidth punctuation is left alone
CJK = r"\u2e80-\u2fff\u3040-\u30ff\u3100-\u31ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af\uf900-\ufaff"
LATIN = r"A-Za-z0-9"

_CJK_THEN_LATIN = re.compile(rf"([{CJK}])([{LATIN}])")
_LATIN_THEN_CJK = re.compile(rf"([{LATIN}])([{CJK}])")


def auto_space(text: str) -> str:
    """
    Put a single space between CJK and Latin/digit runs:
    "Gitlab怎么集成GitlabCI" -> "Gitlab 怎么集成 GitlabCI".
    Running it twice gives the same result.
    """
    if not text:
        return text
    text = _CJK_THEN_LATIN.sub(r"\1 \2", text)
    return _LATIN_THEN_CJK.sub(r"\1 \2", text)
