"""Conversion of free text into branch- and path-friendly slugs."""

_SEPARATORS = frozenset(" /:")
_KEPT = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-_")


def slugify(s: str) -> str:
    """Convert ``s`` to a lower-case kebab-case slug.

    ASCII letters are lower-cased, digits, ``-`` and ``_`` are kept,
    spaces, slashes and colons become a single dash, and everything else
    is dropped. An empty result becomes ``"unnamed"``.
    """
    chars: list[str] = []
    for c in s:
        if "A" <= c <= "Z":
            chars.append(c.lower())
        elif c in _KEPT:
            chars.append(c)
        elif c in _SEPARATORS and chars and chars[-1] != "-":
            chars.append("-")
    slug = "".join(chars).rstrip("-")
    return slug or "unnamed"