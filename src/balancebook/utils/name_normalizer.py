"""Account name normalization for fuzzy lookup of imported names."""

import re
import string

# ASCII punctuation plus common CJK punctuation marks
_PUNCTUATION = re.compile(
    "[" + re.escape(string.punctuation) + "，。、；：？！“”‘’（）【】《》「」『』〈〉…—·～]"
)
_WHITESPACE = re.compile(r"\s+")


def to_half_width(text: str) -> str:
    """Convert full-width ASCII variants and the ideographic space to half width."""
    chars = []
    for ch in text:
        code = ord(ch)
        if code == 0x3000:
            chars.append(" ")
        elif 0xFF01 <= code <= 0xFF5E:
            chars.append(chr(code - 0xFEE0))
        else:
            chars.append(ch)
    return "".join(chars)


def normalize_name(name: str) -> str:
    """Return the lookup key of an account name.

    Case-folds, converts full width to half width, removes whitespace and
    strips punctuation, so "Cash Wallet", "cash-wallet" and "ＣＡＳＨ　ＷＡＬＬＥＴ"
    share one key.
    """
    if not name:
        return ""
    text = to_half_width(name).casefold()
    text = _WHITESPACE.sub("", text)
    return _PUNCTUATION.sub("", text)
