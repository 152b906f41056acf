from __future__ import annotations

ESC = b"\x1b"
CSI = ESC + b"["

CONTROL_C = b"\x03"
CONTROL_D = b"\x04"

QUIT = "quit"
ENTER = "enter"
UP = "up"
DOWN = "down"
RIGHT = "right"
LEFT = "left"

ARROW_KEYS: dict[bytes, str] = {
    CSI + b"A": UP,
    CSI + b"B": DOWN,
    CSI + b"C": RIGHT,
    CSI + b"D": LEFT,
}

_CONTROL_KEYS: dict[bytes, str] = {
    CONTROL_C: QUIT,
    CONTROL_D: QUIT,
    b"\r": ENTER,
    b"\n": ENTER,
}


def decode_key(raw: bytes) -> str | None:
    """Map one raw key press to a logical key, or None if it means nothing to us."""

    if raw in ARROW_KEYS:
        return ARROW_KEYS[raw]
    if raw in _CONTROL_KEYS:
        return _CONTROL_KEYS[raw]
    if len(raw) == 1 and 0x20 <= raw[0] < 0x7F:
        return raw.decode("ascii").lower()
    return None


def _csi_end(buffer: bytes) -> int | None:
    """Index just past the final byte of the CSI sequence at the start of `buffer`."""

    for i in range(len(CSI), len(buffer)):
        if 0x40 <= buffer[i] <= 0x7E:
            return i + 1
    return None


def decode_keys(buffer: bytes) -> tuple[list[str], bytes]:
    """Split buffered input into logical keys.

    Returns the decoded keys and the unconsumed tail. A read may return only part
    of an escape sequence, so a trailing ESC or unterminated CSI sequence is kept
    for the next call. Complete CSI sequences we don't know (modified arrows,
    function keys) are dropped whole.
    """

    keys: list[str] = []
    while buffer and buffer != ESC:
        if buffer.startswith(CSI):
            end = _csi_end(buffer)
            if end is None:
                break
            raw, buffer = buffer[:end], buffer[end:]
        else:
            raw, buffer = buffer[:1], buffer[1:]
        key = decode_key(raw)
        if key is not None:
            keys.append(key)
    return keys, buffer
