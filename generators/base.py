"""Base generator class with an injected, seedable random source."""

import random
from datetime import UTC, datetime
from typing import Any


class BaseGenerator:
    """Owns one ``random.Random``; never touches the module-level generator.

    Pass ``rng`` to share a source with the caller (one per virtual user), or
    ``seed`` for a private reproducible one.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or {}
        self.seed = seed
        self.rng = rng if rng is not None else random.Random(seed)

    def _now(self) -> datetime:
        return datetime.now(UTC)
