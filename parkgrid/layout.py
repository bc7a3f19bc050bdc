"""Default yard layout used to provision an empty store."""

import math

from .models import Slot

WEST_AREA = "west"
CENTER_AREA = "center"
EAST_AREA = "east"


def default_layout(count: int = 50, columns: int = 5) -> list[Slot]:
    """Build the standard yard grid.

    Slots are numbered from 1 and laid out row by row. The first column is
    the west row (labels ``西-<row>``), the last column the east row
    (``東-<row>``) and the columns in between are lengthwise bays (``縦``).

    Args:
        count: Number of slots (default: 50)
        columns: Slots per row (default: 5)

    Returns:
        List of empty Slot objects
    """
    if count < 0 or columns < 1:
        raise ValueError("count must be >= 0 and columns >= 1")

    slots = []
    for slot_id in range(1, count + 1):
        row = math.ceil(slot_id / columns)
        position = slot_id % columns
        if position == 1 or columns == 1:
            label, area = f"西-{row}", WEST_AREA
        elif position == 0:
            label, area = f"東-{row}", EAST_AREA
        else:
            label, area = "縦", CENTER_AREA
        slots.append(Slot(id=slot_id, label=label, area=area))
    return slots
