"""Synthetic customer payloads and lookup keys for load iterations."""

from typing import Any

from .base import BaseGenerator
from .utils.names import SEARCH_TERMS, derived_email, random_city, random_name

DEFAULT_MAX_ENTITY_ID = 1000


class CustomerDataFactory(BaseGenerator):
    """Pure generation of request inputs: ids, search terms and records.

    Draws are independent and uniform. Ids and records may repeat across
    calls; realism of the load matters here, not uniqueness.
    """

    @property
    def max_entity_id(self) -> int:
        return int(self.config.get("max_entity_id", DEFAULT_MAX_ENTITY_ID))

    def random_entity_id(self) -> int:
        return self.rng.randint(1, self.max_entity_id)

    def random_search_term(self) -> str:
        return self.rng.choice(self.config.get("search_terms", SEARCH_TERMS))

    def random_record(self) -> dict[str, Any]:
        first, last = random_name(self.rng)
        return {
            "firstName": first,
            "lastName": last,
            "email": derived_email(first, last),
            "city": random_city(self.rng),
            "createdAt": self._now().isoformat(),
        }

    def generate(self, num_customers: int = 1000) -> list[dict[str, Any]]:
        """Batch of records, e.g. to pre-seed the target's customer table."""
        return [self.random_record() for _ in range(num_customers)]
