from typing import Any


def canonical_id(value: Any) -> str:
    """
    Convert an object id returned by any HubSpot endpoint into its canonical string form.

    The v4 association endpoints return ids as numbers while search results, the v3 object endpoints
    and our own callers use strings. Strings are never coerced to numbers, so `"012345"` stays distinct
    from `12345`.
    """

    if isinstance(value, bool) or value is None:
        raise TypeError(f"Invalid object id: {value!r}")

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Invalid object id: {value!r}")
        return str(int(value))

    if isinstance(value, str):
        if not (out := value.strip()):
            raise ValueError("Object id must not be empty")
        return out

    raise TypeError(f"Invalid object id: {value!r}")


def same_id(a: Any, b: Any) -> bool:
    return canonical_id(a) == canonical_id(b)
