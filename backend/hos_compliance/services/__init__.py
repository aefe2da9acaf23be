"""
HOS Compliance Services Package.

This package contains the business logic for Hours of Service
limit evaluation.

Services:
- HOSCalculatorService: Core HOS calculations and rule validation
"""

from .hos_calculator import (
    CYCLE_LIMIT_EXCEEDED,
    DRIVING_LIMIT_EXCEEDED,
    HOSCalculationError,
    HOSCalculatorService,
)

__all__ = [
    "HOSCalculatorService",
    "HOSCalculationError",
    "DRIVING_LIMIT_EXCEEDED",
    "CYCLE_LIMIT_EXCEEDED",
]
