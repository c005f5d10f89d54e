# lurdinha/domain/common/types.py
from __future__ import annotations

from typing import Literal

from lurdinha.store.models import RoomStatus

# What happens to a round where every submitted answer is different
NoMajorityPolicy = Literal["all_safe", "all_penalized"]

__all__ = ["RoomStatus", "NoMajorityPolicy"]
