"""
Calendar visibility rules, evaluated per read.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional


class Visibility(str, Enum):
    ALL = "all"
    ONLY_ME = "only-me"
    SOME = "some"


def is_visible_to(
    viewer_id: int,
    owner_id: int,
    visibility: str,
    viewers: Optional[Iterable[int]] = None,
) -> bool:
    if visibility == Visibility.ALL.value:
        return True
    if visibility == Visibility.ONLY_ME.value:
        return viewer_id == owner_id
    if visibility == Visibility.SOME.value:
        return viewer_id in {int(v) for v in (viewers or ())}
    return False
