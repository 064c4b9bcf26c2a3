"""
Display-name generator for new user profiles.
"""

import random
from typing import Optional

FIRST_NAMES = [
    "Alex", "Jordan", "Taylor", "Morgan", "Casey", "Jamie", "Riley", "Quinn",
    "Avery", "Blake", "Cameron", "Drew", "Eden", "Finley", "Gray", "Harper",
    "Indigo", "Jules", "Kai", "Lennon", "Milo", "Nova", "Ocean", "Phoenix",
    "River", "Sage", "Tatum", "Uma", "Vale", "Winter", "Xen", "Yara", "Zephyr",
]

ADJECTIVES = [
    "Brave", "Clever", "Daring", "Eager", "Fierce", "Gentle", "Happy", "Innocent",
    "Joyful", "Kind", "Lively", "Mighty", "Noble", "Peaceful", "Quick", "Radiant",
    "Swift", "Tender", "Unique", "Vibrant", "Wise", "Xtra", "Young", "Zealous",
]


def generate_display_name(rng: Optional[random.Random] = None) -> str:
    """Half the time an adjective plus first name, otherwise a first name."""
    rng = rng or random
    if rng.random() > 0.5:
        return f"{rng.choice(ADJECTIVES)}{rng.choice(FIRST_NAMES)}"
    return rng.choice(FIRST_NAMES)
