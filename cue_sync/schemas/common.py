"""
Common Schema Helpers
=====================

Bounded Context: Shared Data Structures

Validation helpers and shared value types used by every record schema.

Design Principles:
- Immutability: records are frozen dataclasses
- Validation: constructors validate invariants and raise SchemaValidationError
- Serialization: to_dict()/from_dict() use the persisted camelCase keys
- Timestamps are epoch seconds (float), None when not yet set
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import SchemaValidationError


class Half(str, Enum):
    """Half of a split-mode script page ("" when not split)."""
    NONE = ""
    LEFT = "L"
    RIGHT = "R"


def require_text(value: Any, field_name: str) -> str:
    """Return value if it is a non-blank string, else raise."""
    if not isinstance(value, str) or not value.strip():
        raise SchemaValidationError(f"{field_name} must be a non-empty string, got {value!r}")
    return value


def require_page(value: Any, field_name: str) -> int:
    """Return value if it is a positive page number, else raise."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise SchemaValidationError(f"{field_name} must be a positive integer, got {value!r}")
    return value


def optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class Bounds:
    """
    Percent-space rectangle on a script page.

    Attributes:
        x, y: Top-left corner (percent of page width/height)
        w, h: Size (percent of page width/height)
    """
    x: float
    y: float
    w: float
    h: float

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise SchemaValidationError(f"Bounds size must be >= 0, got w={self.w}, h={self.h}")

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'w': self.w, 'h': self.h}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Bounds':
        try:
            return cls(
                x=float(data['x']),
                y=float(data['y']),
                w=float(data['w']),
                h=float(data['h']),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required Bounds field: {e}")
        except (TypeError, ValueError) as e:
            raise SchemaValidationError(f"Invalid Bounds data: {e}")
