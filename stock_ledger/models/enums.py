"""
Model Enums
"""

from enum import Enum


class TransactionType(Enum):
    IN = "in"
    OUT = "out"
    ADJUST = "adjust"

    @classmethod
    def parse(cls, value):
        """Accept an enum member, its value or its name in any case."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown transaction type: {value!r}")
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown transaction type: {value!r}")


class OutCostingPolicy(Enum):
    CALLER = "caller"  # record the caller's price, fall back to avg cost
    AVG_COST = "avg_cost"  # always record the position's avg cost
