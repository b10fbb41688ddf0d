"""
Record Deduplicator

Admits raw candidates into a run: rejects nameless entries and repeats of an
already seen identity key, assigns a run-unique id and normalises fields.

Admission is a plain synchronous call. Callers running batches concurrently
must funnel candidates through a single consumer (see orchestrator.py) so
the check-then-insert on the seen set is never interleaved.
"""

import random
import string
import time
from typing import Any, Callable, Optional, Set

from ..models import BusinessRecord
from ..parsers.business import candidate_name, identity_key, normalize_business

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 5) -> str:
    return ''.join(random.choices(_ID_ALPHABET, k=length))


class RecordDeduplicator:
    """Tracks identity keys and issued ids for one extraction run."""

    def __init__(
        self,
        run_started_ms: Optional[int] = None,
        suffix_factory: Callable[[], str] = _random_suffix,
    ):
        self.run_started_ms = run_started_ms if run_started_ms is not None else int(time.time() * 1000)
        self.seen_keys: Set[str] = set()
        self._issued_ids: Set[str] = set()
        self._suffix_factory = suffix_factory
        self.duplicates = 0
        self.rejected = 0

    def __len__(self):
        return len(self.seen_keys)

    def _new_id(self, batch_index: int, position: int) -> str:
        base = f"{self.run_started_ms}-{batch_index}-{position}"
        record_id = f"{base}-{self._suffix_factory()}"
        attempt = 0
        while record_id in self._issued_ids:
            attempt += 1
            record_id = f"{base}-{self._suffix_factory()}{attempt}"
        self._issued_ids.add(record_id)
        return record_id

    def admit(self, candidate: Any, batch_index: int, position: int) -> Optional[BusinessRecord]:
        """
        Admit a candidate or reject it.

        Args:
            candidate: Raw object as decoded from the model output
            batch_index: Index of the batch that produced it
            position: Position of the candidate within its batch

        Returns:
            The new BusinessRecord, or None for nameless / duplicate candidates
        """
        if not isinstance(candidate, dict) or not candidate_name(candidate):
            self.rejected += 1
            return None

        key = identity_key(candidate)
        if key in self.seen_keys:
            self.duplicates += 1
            return None

        # the key is only registered once the fields normalise
        fields = normalize_business(candidate)
        self.seen_keys.add(key)
        return BusinessRecord(id=self._new_id(batch_index, position), **fields)
