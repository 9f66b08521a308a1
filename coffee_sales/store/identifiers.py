"""
Customer Identifier Generation

Orders that arrive without a customer id get one shaped like the source
dataset's keys, e.g. ``17670-51384-MA``.
"""

import string
from typing import Callable, Optional

from faker import Faker

CUSTOMER_ID_PATTERN = "#####-#####-??"

IdGenerator = Callable[[], str]


class CustomerIdGenerator:
    """
    Callable producing customer ids from a Faker instance.

    Pass a seed for a reproducible sequence.

    Example:
        generate = CustomerIdGenerator(seed=42)
        generate()  # '65429-87123-QK'
    """

    def __init__(self, seed: Optional[int] = None, pattern: str = CUSTOMER_ID_PATTERN):
        self.pattern = pattern
        self._faker = Faker()
        if seed is not None:
            self._faker.seed_instance(seed)

    def __call__(self) -> str:
        return self._faker.bothify(text=self.pattern, letters=string.ascii_uppercase)
