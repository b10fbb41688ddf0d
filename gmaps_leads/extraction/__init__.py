"""
Extraction module for collecting business leads.

- batch.py: Batch planning and single-batch execution with retries
- cooldown.py: Minimum idle time between extraction runs
- dedup.py: Identity-key deduplication and id assignment
- orchestrator.py: Concurrent batch orchestration
- suggestions.py: Location / niche autocomplete
"""

from .batch import BatchExecutor, RetryPolicy, plan_batches
from .cooldown import CooldownGate
from .dedup import RecordDeduplicator
from .orchestrator import ExtractionOrchestrator, ProgressReporter
from .suggestions import suggest_locations, suggest_niches
