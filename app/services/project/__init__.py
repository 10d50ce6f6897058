"""
Project module.

- pricing.py: Quote price breakdown
- transitions.py: Project status machine
- service.py: Lifecycle operations
"""

from .pricing import PriceBreakdown, calculate_quote
from .service import ProjectService
from .transitions import ALLOWED_TRANSITIONS, apply_transition, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "PriceBreakdown",
    "ProjectService",
    "apply_transition",
    "calculate_quote",
    "can_transition",
]
