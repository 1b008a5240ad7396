"""In-memory customer table backing the reference target service."""

import threading
from datetime import UTC, datetime

from loadbench.target.models import CustomerRequest, CustomerResponse


class CustomerStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._customers: dict[int, CustomerResponse] = {}
        self._next_id = 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._customers)

    def add(self, request: CustomerRequest) -> CustomerResponse:
        with self._lock:
            customer = CustomerResponse(
                id=self._next_id,
                first_name=request.first_name,
                last_name=request.last_name,
                email=request.email,
                city=request.city,
                created_at=request.created_at or datetime.now(UTC),
            )
            self._customers[customer.id] = customer
            self._next_id += 1
            return customer

    def get(self, customer_id: int) -> CustomerResponse | None:
        with self._lock:
            return self._customers.get(customer_id)

    def search(self, term: str | None) -> list[CustomerResponse]:
        """Case-insensitive substring match on name, email and city."""
        with self._lock:
            customers = list(self._customers.values())
        if term is None or not term.strip():
            return customers
        needle = term.strip().lower()
        return [
            c
            for c in customers
            if needle in c.first_name.lower()
            or needle in c.last_name.lower()
            or needle in c.email.lower()
            or (c.city is not None and needle in c.city.lower())
        ]

    def seed(self, records: list[dict]) -> int:
        for record in records:
            self.add(CustomerRequest.model_validate(record))
        return len(records)
