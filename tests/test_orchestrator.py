import asyncio
import json

import httpx
import pytest

from gmaps_leads.exceptions import ExtractionError
from gmaps_leads.extraction.batch import BatchExecutor, RetryPolicy
from gmaps_leads.extraction.cooldown import CooldownGate
from gmaps_leads.extraction.orchestrator import ExtractionOrchestrator
from gmaps_leads.models import ExtractionQuery
from gmaps_leads.parsers.business import identity_key

from .helpers import make_businesses


class ScriptedExecutor:
    """Stands in for BatchExecutor: returns canned candidates per batch index."""

    def __init__(self, results=None, delays=None, rate_limits=None):
        self.results = results or {}
        self.delays = delays or {}
        self.rate_limits = rate_limits or {}
        self.calls = []

    async def execute(self, batch, query, on_rate_limit=None):
        self.calls.append(batch.index)
        for _ in range(self.rate_limits.get(batch.index, 0)):
            on_rate_limit(10.0)
        await asyncio.sleep(self.delays.get(batch.index, 0))
        result = self.results.get(batch.index, [])
        if isinstance(result, Exception):
            raise result
        return [dict(candidate) for candidate in result]


def make_orchestrator(executor, fake_clock, recording_sleep, **kwargs):
    gate = kwargs.pop("cooldown_gate", None) or CooldownGate(5.0, clock=fake_clock, sleep=fake_clock.sleep)
    kwargs.setdefault("batch_size", 15)
    return ExtractionOrchestrator(executor, gate, sleep=recording_sleep, **kwargs)


def test_paris_bakery_scenario_dedups_across_batches(paris_query, fake_clock, recording_sleep):
    batch0 = make_businesses("Bakery", 10)
    batch1 = make_businesses("Bakery", 3, start=7) + make_businesses("Bakery", 9, start=100)
    executor = ScriptedExecutor({0: batch0, 1: batch1}, delays={1: 0.02})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
    partials = []

    leads = asyncio.run(orchestrator.run(paris_query, on_partial_results=partials.append))

    assert sorted(executor.calls) == [0, 1]
    assert len(leads) == 19
    assert [len(p) for p in partials] == [10, 9]
    assert [r.id for p in partials for r in p] == [r.id for r in leads]
    keys = {identity_key(r.to_dict()) for r in leads}
    assert len(keys) == 19


def test_admission_follows_completion_order(paris_query, fake_clock, recording_sleep):
    batch0 = make_businesses("Bakery", 10)
    batch1 = make_businesses("Bakery", 3, start=7) + make_businesses("Bakery", 9, start=100)
    executor = ScriptedExecutor({0: batch0, 1: batch1}, delays={0: 0.05})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
    partials = []

    leads = asyncio.run(orchestrator.run(paris_query, on_partial_results=partials.append))

    # batch 1 finished first, so its 12 were admitted whole and batch 0 lost its 3 duplicates
    assert [len(p) for p in partials] == [12, 7]
    assert len(leads) == 19
    assert leads[0].name == "Bakery 7"


def test_never_returns_more_than_limit(fake_clock, recording_sleep):
    query = ExtractionQuery("Lyon", "Cafe", 20)
    executor = ScriptedExecutor({0: make_businesses("Cafe", 15), 1: make_businesses("Cafe", 15, start=50)})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep, cancel_on_limit=False)

    leads = asyncio.run(orchestrator.run(query))

    assert len(leads) == 20
    assert sorted(executor.calls) == [0, 1]


def test_cancels_in_flight_batches_once_full(fake_clock, recording_sleep):
    query = ExtractionQuery("Lyon", "Cafe", 20)
    executor = ScriptedExecutor(
        {0: make_businesses("Cafe", 25), 1: make_businesses("Cafe", 5, start=50)},
        delays={1: 30},
    )
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
    progress = []

    leads = asyncio.run(orchestrator.run(query, on_progress=progress.append))

    assert len(leads) == 20
    assert orchestrator.last_statistics["cancelled_batches"] == 1
    assert progress[-1].percentage == 100


def test_progress_is_monotonic_and_ends_at_100(paris_query, fake_clock, recording_sleep):
    executor = ScriptedExecutor(
        {0: make_businesses("Bakery", 5), 1: make_businesses("Bakery", 5, start=20)},
        delays={0: 0.02},
        rate_limits={0: 2},
    )
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
    progress = []

    asyncio.run(orchestrator.run(paris_query, on_progress=progress.append))

    percentages = [p.percentage for p in progress]
    assert percentages == sorted(percentages)
    assert percentages[0] == 5
    assert percentages[-1] == 100
    assert progress[-1].message == "Extraction complete. Found 10 unique leads."
    assert any("wait for 10 seconds" in p.message for p in progress)
    assert any(p.message == "Extracted 10 leads so far..." for p in progress)


def test_staggers_batch_starts(fake_clock, recording_sleep):
    query = ExtractionQuery("Nice", "Florist", 40)
    orchestrator = make_orchestrator(ScriptedExecutor(), fake_clock, recording_sleep, stagger=0.15)

    asyncio.run(orchestrator.run(query))

    assert sorted(recording_sleep.calls) == [pytest.approx(0.15), pytest.approx(0.30)]


def test_all_batches_failing_resolves_to_empty_list(paris_query, fake_clock, recording_sleep):
    executor = ScriptedExecutor({0: RuntimeError("executor bug"), 1: []})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
    progress = []

    leads = asyncio.run(orchestrator.run(paris_query, on_progress=progress.append))

    assert leads == []
    assert progress[-1].percentage == 100
    assert progress[-1].message == "Extraction complete. Found 0 unique leads."


def test_timed_out_batch_contributes_nothing(paris_query, fake_clock, recording_sleep):
    executor = ScriptedExecutor({0: make_businesses("Bakery", 4), 1: make_businesses("Bakery", 4, start=10)},
                                delays={1: 30})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep, batch_timeout=0.05)

    leads = asyncio.run(orchestrator.run(paris_query))

    assert [r.name for r in leads] == ["Bakery 0", "Bakery 1", "Bakery 2", "Bakery 3"]


def test_timeout_log_keeps_sub_second_precision(paris_query, fake_clock, recording_sleep, caplog):
    executor = ScriptedExecutor(delays={0: 30})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep, batch_timeout=0.05)

    with caplog.at_level("ERROR", logger="gmaps_leads.extraction.orchestrator"):
        asyncio.run(orchestrator.run(paris_query))

    assert "Batch 0 timed out after 0.05s" in caplog.text


def test_second_run_waits_for_cooldown(paris_query, fake_clock, recording_sleep):
    orchestrator = make_orchestrator(ScriptedExecutor({0: make_businesses("Bakery", 1)}), fake_clock, recording_sleep)
    progress = []

    async def two_runs():
        await orchestrator.run(paris_query)
        fake_clock.now += 2
        await orchestrator.run(paris_query, on_progress=progress.append)

    asyncio.run(two_runs())

    assert fake_clock.sleeps == [pytest.approx(3.0)]
    assert progress[0].percentage == 0
    assert "wait 3 seconds" in progress[0].message


def test_plan_failure_aborts_run_and_still_releases_gate(paris_query, fake_clock, recording_sleep):
    gate = CooldownGate(5.0, clock=fake_clock, sleep=fake_clock.sleep)
    orchestrator = make_orchestrator(ScriptedExecutor(), fake_clock, recording_sleep, cooldown_gate=gate, batch_size=0)

    with pytest.raises(ExtractionError):
        asyncio.run(orchestrator.run(paris_query))

    assert gate.last_end == fake_clock.now


def test_malformed_upstream_text_completes_with_no_records(paris_query, fake_clock, recording_sleep, mock_client):
    def handler(request):
        return httpx.Response(200, json={"success": True, "text": "Sorry, I cannot help."})

    async def go():
        async with mock_client(handler) as client:
            executor = BatchExecutor(client, "http://api.test", RetryPolicy(), sleep=recording_sleep)
            orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
            return await orchestrator.run(paris_query)

    assert asyncio.run(go()) == []


def test_non_finite_numbers_do_not_abort_the_run(paris_query, fake_clock, recording_sleep):
    # json.loads accepts NaN and Infinity, so model text can carry them
    odd = json.loads('[{"name": "Bad", "phone": "1", "reviewCount": NaN, "rating": Infinity},'
                     ' {"name": "Worse", "phone": "2", "reviewCount": -Infinity}]')
    executor = ScriptedExecutor({0: odd, 1: make_businesses("Bakery", 3)})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)

    leads = asyncio.run(orchestrator.run(paris_query))

    assert len(leads) == 5
    bad = next(r for r in leads if r.name == "Bad")
    assert bad.review_count == 0
    assert bad.rating == 0.0
    assert next(r for r in leads if r.name == "Worse").review_count == 0


def test_candidate_failing_normalisation_is_rejected_alone(paris_query, fake_clock, recording_sleep, monkeypatch):
    from gmaps_leads.extraction import dedup as dedup_module

    real_normalize = dedup_module.normalize_business

    def fragile_normalize(candidate):
        if candidate.get("name") == "Bakery 1":
            raise OverflowError("cannot convert float infinity to integer")
        return real_normalize(candidate)

    monkeypatch.setattr(dedup_module, "normalize_business", fragile_normalize)
    executor = ScriptedExecutor({0: make_businesses("Bakery", 3), 1: make_businesses("Bakery", 2, start=10)})
    orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)

    leads = asyncio.run(orchestrator.run(paris_query))

    assert sorted(r.name for r in leads) == ["Bakery 0", "Bakery 10", "Bakery 11", "Bakery 2"]
    assert orchestrator.last_statistics["rejected"] == 1


def test_repeated_rate_limits_still_contribute_records(paris_query, fake_clock, recording_sleep, mock_client):
    attempts = {}

    def handler(request):
        index = json.loads(request.content)["batch_index"]
        attempts[index] = attempts.get(index, 0) + 1
        if index == 0 and attempts[index] <= 3:
            return httpx.Response(429, json={"detail": "429 RESOURCE_EXHAUSTED"})
        return httpx.Response(200, json={"text": json.dumps(make_businesses(f"Batch{index}", 5))})

    async def go():
        async with mock_client(handler) as client:
            policy = RetryPolicy(rate_limit_wait=0.2, attempt_timeout=0.5)
            executor = BatchExecutor(client, "http://api.test", policy)
            orchestrator = make_orchestrator(executor, fake_clock, recording_sleep)
            return await orchestrator.run(paris_query)

    leads = asyncio.run(go())

    assert attempts[0] == 4
    assert len(leads) == 10
    assert sum(r.name.startswith("Batch0") for r in leads) == 5
