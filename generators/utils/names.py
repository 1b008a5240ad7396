"""Name, city and search vocabularies for synthetic customer data."""

import random

FIRST_NAMES = ["John", "Jane", "Michael", "Sarah", "David", "Emily", "Robert", "Jennifer"]

LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]

CITIES = [
    "New York",
    "Los Angeles",
    "Chicago",
    "Houston",
    "Phoenix",
    "Philadelphia",
    "San Antonio",
    "San Diego",
]

# Terms chosen to hit both name and city columns of the customer search
SEARCH_TERMS = ["John", "Jane", "Smith", "New York", "Chicago", "Garcia"]


def random_name(rng: random.Random) -> tuple[str, str]:
    return rng.choice(FIRST_NAMES), rng.choice(LAST_NAMES)


def random_city(rng: random.Random) -> str:
    return rng.choice(CITIES)


def derived_email(first_name: str, last_name: str, domain: str = "example.com") -> str:
    clean_last = last_name.lower().replace(" ", "").replace("-", "")
    return f"{first_name.lower()}.{clean_last}@{domain}"
