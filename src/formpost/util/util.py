from typing import Optional, Union


def to_bytes(
    x: Union[str, bytes], encoding: Optional[str] = None, errors: Optional[str] = None
) -> bytes:
    if isinstance(x, bytes):
        return x
    elif not isinstance(x, str):
        raise TypeError(f"not expecting type {type(x).__name__}")
    if encoding or errors:
        return x.encode(encoding or "utf-8", errors=errors or "strict")
    return x.encode()


def to_base36(number: int) -> str:
    """
    Render a non-negative integer in base 36 using ``0-9a-z``.

    Example::

        >>> to_base36(35)
        'z'
        >>> to_base36(36)
        '10'
    """
    if number < 0:
        raise ValueError("number must be non-negative")
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))
