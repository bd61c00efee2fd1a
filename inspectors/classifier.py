"""
Content classification heuristics.

Two pure predicates shared by the tree scanner and the diff-stream scanner.
"""
import re

# CJK Unified Ideographs + Hangul Syllables
NON_TARGET_SCRIPT_RE = re.compile('[\u4e00-\u9fff\uac00-\ud7af]')

# Control bytes that never occur in text: 0x00-0x08 and 0x0E-0x1F.
# Tab, LF, VT, FF and CR are legitimate.
_BINARY_BYTES_RE = re.compile(rb'[\x00-\x08\x0e-\x1f]')


def is_binary(data: bytes) -> bool:
    """
    Return True if the sample contains a control byte outside tab/LF/VT/FF/CR.

    Args:
        data: A representative byte chunk (a small file's head, or one line).
    """
    return _BINARY_BYTES_RE.search(data) is not None


def contains_non_target_script(text: str) -> bool:
    """Return True if any code point is a CJK ideograph or a Hangul syllable."""
    return NON_TARGET_SCRIPT_RE.search(text) is not None
