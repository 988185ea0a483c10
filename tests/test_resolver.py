#!/usr/bin/env python3
"""
Test suite for the Match Resolver
"""

import pytest

from agents.resolver import CONFIDENCE_THRESHOLD, MatchResolver, ResolutionPolicy
from media.errors import MatchAmbiguous
from orchestrator.prompt import ConsolePrompt, ScriptedPrompt
from sources.base import ReleaseCandidate
from conftest import make_record


def _tied_candidates():
    """Two library files named Song.mp3 that both score 0.6 against the target"""
    first = make_record("/lib/a/Song.mp3", artist="red blue green pink black")
    second = make_record("/lib/b/Song.mp3", artist="red blue green pink black")
    return first, second


class TestResolveBasics:
    """Test candidate count rules"""

    def test_no_candidates(self):
        resolver = MatchResolver()
        assert resolver.resolve(make_record(), []) is None
        assert resolver.last_outcome.reason == "no candidates"

    def test_single_candidate_taken_without_scoring(self):
        """Scenario A: one candidate is returned as-is"""
        record_x = make_record("/lib/Song.mp3", artist="Somebody Else")
        resolver = MatchResolver()

        chosen = resolver.resolve(make_record("/hq/Song.mp3", artist="The Beatles"), [record_x])

        assert chosen is record_x
        assert resolver.last_outcome.scored is False
        assert resolver.last_outcome.candidates == []

    def test_typo_candidate_loses(self):
        """Scenario B: exact artist/album/title beats a typo'd artist"""
        target = make_record("/hq/Song.mp3", artist="The Beatles", album="Help!", title="Yesterday")
        first = make_record("/lib/1/Song.mp3", artist="The Beatles", album="Help!", title="Yesterday")
        second = make_record("/lib/2/Song.mp3", artist="The Beatless", album="Help!", title="Yesterday")
        resolver = MatchResolver()

        chosen = resolver.resolve(target, [first, second], ResolutionPolicy.AUTO_SELECT_BEST_MATCH)

        assert chosen is first
        assert resolver.last_outcome.best.score >= 0.9

    def test_tie_goes_to_first_in_catalog_order(self):
        """Scenario C: equal scores pick the first candidate"""
        first, second = _tied_candidates()
        target = make_record("/hq/Song.mp3", artist="red blue green yellow orange")
        resolver = MatchResolver()

        chosen = resolver.resolve(target, [first, second])

        assert resolver.last_outcome.best.score == pytest.approx(0.6)
        assert chosen is first

    def test_default_threshold(self):
        assert CONFIDENCE_THRESHOLD == 0.5


class TestAmbiguity:
    """Test policies below the confidence threshold"""

    def _ambiguous(self):
        target = make_record("/hq/Song.mp3", artist="Alpha", album="One")
        first = make_record("/lib/1/Song.mp3", artist="Beta", album="Two")
        second = make_record("/lib/2/Song.mp3", artist="Gamma", album="Three")
        return target, [first, second]

    def test_skip_policy_returns_none(self):
        target, candidates = self._ambiguous()
        resolver = MatchResolver()

        assert resolver.resolve(target, candidates, ResolutionPolicy.SKIP_ON_AMBIGUITY) is None
        assert resolver.manual_review == ["song.mp3"]
        assert resolver.last_outcome.reason.startswith("ambiguous")

    def test_ambiguity_recorded_as_error(self):
        target, candidates = self._ambiguous()
        resolver = MatchResolver()

        resolver.resolve(target, candidates)

        error = resolver.last_outcome.error
        assert isinstance(error, MatchAmbiguous)
        assert error.path == target.path
        assert "does not clear threshold" in str(error)

    def test_confident_match_has_no_error(self):
        target = make_record("/hq/Song.mp3", artist="Alpha", album="One")
        candidates = [make_record("/lib/1/Song.mp3", artist="Alpha", album="One"),
                      make_record("/lib/2/Song.mp3", artist="Beta", album="Two")]
        resolver = MatchResolver()

        resolver.resolve(target, candidates)

        assert resolver.last_outcome.error is None

    def test_auto_policy_never_guesses_below_threshold(self):
        target, candidates = self._ambiguous()
        assert MatchResolver().resolve(target, candidates, ResolutionPolicy.AUTO_SELECT_BEST_MATCH) is None

    def test_prompt_policy_uses_callback(self):
        target, candidates = self._ambiguous()
        prompt = ScriptedPrompt([1])
        resolver = MatchResolver(prompt=prompt)

        chosen = resolver.resolve(target, candidates, ResolutionPolicy.PROMPT_FOR_SELECTION)

        assert chosen is candidates[1]
        assert [c.record for c in prompt.calls[0]] == candidates

    def test_prompt_skip_signal(self):
        target, candidates = self._ambiguous()
        resolver = MatchResolver(prompt=ScriptedPrompt([None]))

        assert resolver.resolve(target, candidates, ResolutionPolicy.PROMPT_FOR_SELECTION) is None
        assert resolver.last_outcome.reason == "selection skipped"

    def test_prompt_out_of_range_is_skip(self):
        target, candidates = self._ambiguous()
        resolver = MatchResolver(prompt=ScriptedPrompt([7]))
        assert resolver.resolve(target, candidates, ResolutionPolicy.PROMPT_FOR_SELECTION) is None

    def test_prompt_not_called_above_threshold(self):
        first, second = _tied_candidates()
        target = make_record("/hq/Song.mp3", artist="red blue green yellow orange")
        prompt = ScriptedPrompt([1])

        chosen = MatchResolver(prompt=prompt).resolve(target, [first, second], ResolutionPolicy.PROMPT_FOR_SELECTION)

        assert chosen is first
        assert prompt.calls == []

    def test_require_manual_prompts_above_threshold(self):
        first, second = _tied_candidates()
        target = make_record("/hq/Song.mp3", artist="red blue green yellow orange")
        prompt = ScriptedPrompt([1])
        resolver = MatchResolver(prompt=prompt, require_manual=True)

        chosen = resolver.resolve(target, [first, second], ResolutionPolicy.PROMPT_FOR_SELECTION)

        assert chosen is second
        assert len(prompt.calls) == 1


class TestConsolePrompt:
    """Test the console selection menu"""

    def test_numbered_choice(self):
        answers = iter(["x", "5", "2"])
        output = []
        prompt = ConsolePrompt(input_func=lambda _: next(answers), output=output.append)
        resolver = MatchResolver()
        target = make_record("/hq/Song.mp3", artist="A")
        ranked = resolver.rank(target, [make_record("/l/1/Song.mp3"), make_record("/l/2/Song.mp3")])

        assert prompt(target, ranked) == 1
        assert output.count("Invalid choice, try again") == 2

    def test_blank_skips(self):
        prompt = ConsolePrompt(input_func=lambda _: "", output=lambda _: None)
        target = make_record("/hq/Song.mp3")
        assert prompt(target, MatchResolver().rank(target, [make_record("/l/Song.mp3")])) is None


class TestResolveReleases:
    """Test remote release selection"""

    def _release(self, recording_id, **kwargs):
        values = dict(source="musicbrainz", recording_id=recording_id, title="Yesterday", artist="The Beatles")
        values.update(kwargs)
        return ReleaseCandidate(**values)

    def test_empty(self):
        assert MatchResolver().resolve_releases(make_record(), []) is None

    def test_best_score_wins(self):
        target = make_record(artist="The Beatles", title="Yesterday", album="Help!")
        worse = self._release("1", album="Love Songs")
        better = self._release("2", album="Help!")
        assert MatchResolver().resolve_releases(target, [worse, better]) is better

    def test_official_release_breaks_tie(self):
        target = make_record(artist="The Beatles", title="Yesterday")
        bootleg = self._release("1", status="Bootleg", country="XW")
        promo = self._release("2", status="Promotion", country="GB")
        official = self._release("3", status="Official", country="GB")

        assert MatchResolver().resolve_releases(target, [bootleg, promo, official]) is official

    def test_official_needs_country(self):
        assert not self._release("1", status="Official").is_official
        assert self._release("1", status="official", country="US").is_official

    def test_service_rank_breaks_remaining_ties(self):
        target = make_record(artist="The Beatles", title="Yesterday")
        first = self._release("1")
        second = self._release("2")
        assert MatchResolver().resolve_releases(target, [first, second]) is first

    def test_unrelated_releases_below_threshold(self):
        target = make_record(artist="Queen", title="Bohemian Rhapsody", album="A Night at the Opera")
        releases = [
            self._release("1", status="Official", country="GB"),
            self._release("2", album="Help!"),
        ]
        resolver = MatchResolver()

        assert resolver.resolve_releases(target, releases) is None
        assert isinstance(resolver.last_outcome.error, MatchAmbiguous)
        assert resolver.manual_review == [target.file_name_key]

    def test_release_prompt_sees_tie_break_order(self):
        target = make_record(artist="Queen", title="Bohemian Rhapsody")
        bootleg = self._release("1", status="Bootleg", country="XW")
        official = self._release("2", status="Official", country="GB")
        prompt = ScriptedPrompt([0])
        resolver = MatchResolver(prompt=prompt)

        chosen = resolver.resolve_releases(target, [bootleg, official], ResolutionPolicy.PROMPT_FOR_SELECTION)

        assert chosen is official
        assert len(prompt.calls) == 1
