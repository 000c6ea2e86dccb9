# core/fulltext/measure.py
"""Token length metric used to pick a token's shard."""

def token_length(token: str) -> int:
    """
    Measure a token for shard assignment.

    The base is the UTF-8 byte length. Three-byte characters (lead bytes
    0xE2-0xEF, which covers CJK) are inflated by `lead_byte - 0xE1`, so
    every Chinese "word" does not land in the length 3 shard. For example
    "abc" measures 3 while "中" (lead byte 0xE4) measures 3 + 3 = 6.

    Raises:
        ValueError: token holds lone surrogates
    """
    try:
        encoded = token.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValueError(f"Token is not valid Unicode text: {token!r}") from e
    length = len(encoded)
    for byte in encoded:
        if 0xE2 <= byte <= 0xEF:
            length += byte - 0xE1
    return length
