from __future__ import annotations

from typing import Any


def canonical_id(value: Any) -> str:
    """
    Normalize a user identifier to its canonical string form.

    Accepts model instances (anything with ``pk``), raw primary keys and their
    string form, so ``canonical_id(user) == canonical_id(user.pk) == canonical_id(str(user.pk))``.
    """
    if value is None:
        raise ValueError("identifier is required")
    pk = getattr(value, "pk", value)
    if pk is None:
        raise ValueError("identifier is not saved yet")
    return str(pk).strip()
