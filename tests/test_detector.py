import asyncio

import dns.resolver
import pytest

from conftest import FakeLookup
from typolink.errors import DetectorNotReadyError
from typolink.ml.model import TypoUrlModel
from typolink.services.detector import (
    WARNING_PREFIX,
    DetectionSession,
    TypoDetector,
    find_candidate_tokens,
    normalize_token,
)
from typolink.services.dictionaries import Dictionaries
from typolink.services.ns_lookup import DNSNameServerLookup


def make_detector(dictionaries, model, lookup, timeout=1.0):
    return TypoDetector(dictionaries=dictionaries, model=model, ns_lookup=lookup, timeout=timeout, max_candidates=10)


# ------------------------------------------------------
# Token handling
# ------------------------------------------------------

def test_normalize_token_strips_scheme():
    assert normalize_token("https://you.you") == "you.you"
    assert normalize_token(" http://go.to.it ") == "go.to.it"


def test_find_candidate_tokens():
    text = "thank you.you. See google.com! (or go.to.it)"
    assert find_candidate_tokens(text) == ["you.you", "google.com", "go.to.it"]
    assert find_candidate_tokens("no links here.") == []


# ------------------------------------------------------
# Detection pass
# ------------------------------------------------------

def test_typo_is_flagged(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": []})
    detector = make_detector(dictionaries, ns_prep_model, lookup)
    verdict = asyncio.run(detector.detect([("you.you", "thank you.you so much"), ("google.com", "see google.com")]))

    assert verdict.typos == ["you.you"]
    assert verdict.warning
    assert verdict.message == WARNING_PREFIX + "you.you"
    # rejected by the prefilter, so never looked up
    assert lookup.calls == ["you.you"]
    by_token = {c.token: c for c in verdict.candidates}
    assert by_token["you.you"].label == 1
    assert by_token["you.you"].features["ns"] == 1
    assert by_token["google.com"].features is None


def test_registered_domain_after_cue_is_not_flagged(dictionaries, ns_prep_model):
    lookup = FakeLookup({"go.to.it": ["ns1.nic.it."]})
    detector = make_detector(dictionaries, ns_prep_model, lookup)
    verdict = asyncio.run(detector.detect_text("visit go.to.it"))

    assert verdict.typos == []
    assert not verdict.warning
    assert verdict.message is None
    assert verdict.candidates[0].label == -1


def test_duplicate_tokens_are_checked_once(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": []})
    detector = make_detector(dictionaries, ns_prep_model, lookup)
    verdict = asyncio.run(detector.detect([("https://you.you", "you.you"), ("you.you", "you.you")]))

    assert lookup.calls == ["you.you"]
    assert verdict.typos == ["you.you"]


def test_lookups_run_concurrently_and_are_joined(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": [], "so.no": [], "go.to": []}, delay=0.05)
    detector = make_detector(dictionaries, ns_prep_model, lookup)
    verdict = asyncio.run(detector.detect_text("lol you.you so.no go.to"))

    assert lookup.max_in_flight == 3
    assert sorted(verdict.typos) == ["go.to", "so.no", "you.you"]
    assert all(c.label is not None for c in verdict.candidates)


def test_lookup_timeout_fails_open(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": []}, delay=1.0)
    detector = make_detector(dictionaries, ns_prep_model, lookup, timeout=0.05)
    verdict = asyncio.run(detector.detect_text("thank you.you"))

    assert verdict.candidates[0].features["ns"] == 0
    assert verdict.candidates[0].ns_records is None
    assert verdict.typos == []


def test_lookup_error_fails_open(dictionaries, ns_prep_model):
    detector = make_detector(dictionaries, ns_prep_model, FakeLookup(fail=True))
    verdict = asyncio.run(detector.detect_text("thank you.you"))
    assert verdict.candidates[0].features["ns"] == 0
    assert verdict.typos == []


def test_servfail_from_resolver_fails_open(dictionaries, ns_prep_model):
    class ServfailResolver:
        def resolve(self, domain, rdtype):
            raise dns.resolver.NoNameservers()

    lookup = DNSNameServerLookup(timeout=1, resolver=ServfailResolver())
    detector = make_detector(dictionaries, ns_prep_model, lookup)
    verdict = asyncio.run(detector.detect_text("thank you.you"))

    assert verdict.candidates[0].features["ns"] == 0
    assert verdict.candidates[0].ns_records is None
    assert verdict.typos == []


def test_candidate_cap_limits_lookups(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": [], "so.no": [], "go.to": []})
    detector = TypoDetector(dictionaries=dictionaries, model=ns_prep_model, ns_lookup=lookup, timeout=1.0, max_candidates=2)
    verdict = asyncio.run(detector.detect_text("lol you.you so.no go.to"))

    assert [c.token for c in verdict.candidates] == ["you.you", "so.no"]
    assert lookup.calls == ["you.you", "so.no"]
    assert "go.to" not in verdict.typos


def test_without_model_no_verdict_is_given(dictionaries, tmp_path):
    model = TypoUrlModel(model_path=str(tmp_path / "missing.json"))
    detector = make_detector(dictionaries, model, FakeLookup({"you.you": []}))
    verdict = asyncio.run(detector.detect_text("thank you.you"))

    assert not verdict.model_available
    assert verdict.typos == []
    assert verdict.candidates[0].features["ns"] == 1
    assert verdict.candidates[0].label is None


def test_detection_requires_dictionaries(ns_prep_model):
    with pytest.raises(DetectorNotReadyError):
        make_detector(Dictionaries(), ns_prep_model, FakeLookup())


# ------------------------------------------------------
# Cancellation
# ------------------------------------------------------

def test_cancelling_the_pass_cancels_lookups(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": [], "so.no": []}, delay=5.0)
    detector = make_detector(dictionaries, ns_prep_model, lookup, timeout=10.0)

    async def run():
        task = asyncio.ensure_future(detector.detect_text("you.you so.no"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert sorted(lookup.cancelled) == ["so.no", "you.you"]


def test_session_drops_superseded_pass(dictionaries, ns_prep_model):
    lookup = FakeLookup({"you.you": [], "so.no": []}, delay=0.1)
    session = DetectionSession(make_detector(dictionaries, ns_prep_model, lookup))

    async def run():
        first = asyncio.ensure_future(session.submit("thank you.you"))
        await asyncio.sleep(0.02)
        second = asyncio.ensure_future(session.submit("thank so.no"))
        return await first, await second

    stale, fresh = asyncio.run(run())
    assert stale is None
    assert fresh.typos == ["so.no"]
    assert "you.you" in lookup.cancelled
