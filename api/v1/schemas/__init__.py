"""Re-export individual schema modules for easy imports."""

from .form import DeleteOut, FormOut, PriceIn, SaveOut, SlotNameIn, SlotOut
from .meal import MealRecordOut

__all__ = [
    "DeleteOut",
    "FormOut",
    "PriceIn",
    "SaveOut",
    "SlotNameIn",
    "SlotOut",
    "MealRecordOut",
]
