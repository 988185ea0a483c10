#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Match Resolver - Picks the source record for a work item.

Rules:
- No candidates: nothing to merge
- One candidate: taken as-is, no scoring
- Several candidates: scored with record_similarity; the first candidate
  with the top score wins if it clears the confidence threshold.
  Below the threshold the resolution policy decides (prompt or skip).

Remote lookup results are resolved the same way, with official retail
releases preferred among equal scores.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from media.errors import MatchAmbiguous
from media.records import MediaRecord

from .similarity import CONTAINMENT_SCORE, score_with_rationale


CONFIDENCE_THRESHOLD = 0.5


class ResolutionPolicy(Enum):
    """What to do when candidates are ambiguous"""
    AUTO_SELECT_BEST_MATCH = "auto"
    PROMPT_FOR_SELECTION = "prompt"
    SKIP_ON_AMBIGUITY = "skip"

    @classmethod
    def from_name(cls, value: Optional[str]) -> "ResolutionPolicy":
        """Parse 'auto' / 'prompt' / 'skip' (or the member name)"""
        if not value:
            return cls.SKIP_ON_AMBIGUITY
        text = str(value).strip().lower()
        for policy in cls:
            if text in (policy.value, policy.name.lower()):
                return policy
        raise ValueError(f"Unknown resolution policy: {value}")


@dataclass
class MatchCandidate:
    """A candidate record with its score"""
    record: MediaRecord
    score: float = 0.0
    rationale: Dict[str, float] = field(default_factory=dict)

    def describe(self) -> str:
        parts = ", ".join(f"{k}={v:.2f}" for k, v in self.rationale.items())
        return f"{self.score:.2f} ({parts or 'no comparable fields'})"


# Callback: receives candidates in catalog order, returns chosen index or None to skip
PromptCallback = Callable[[MediaRecord, List[MatchCandidate]], Optional[int]]


@dataclass
class ResolutionOutcome:
    """Details of the latest resolve() call, for logging"""
    record: Optional[MediaRecord] = None
    best: Optional[MatchCandidate] = None
    candidates: List[MatchCandidate] = field(default_factory=list)
    reason: str = ""
    scored: bool = False
    error: Optional[MatchAmbiguous] = None


class MatchResolver:
    """
    Selects the single best candidate for a target record.

    Args:
        threshold: Minimum score for automatic selection among several candidates
        prompt: Selection callback used by PROMPT_FOR_SELECTION
        require_manual: With PROMPT_FOR_SELECTION, prompt even above the threshold
        containment_score: Score for substring containment in string comparisons
    """

    def __init__(
        self,
        threshold: float = CONFIDENCE_THRESHOLD,
        prompt: Optional[PromptCallback] = None,
        require_manual: bool = False,
        containment_score: float = CONTAINMENT_SCORE
    ):
        self.threshold = threshold
        self.prompt = prompt
        self.require_manual = require_manual
        self.containment_score = containment_score
        self.manual_review: List[str] = []
        self.last_outcome = ResolutionOutcome()

    def rank(self, target: MediaRecord, candidates: Sequence[MediaRecord]) -> List[MatchCandidate]:
        """Score every candidate; order is preserved"""
        ranked = []
        for record in candidates:
            score, rationale = score_with_rationale(target, record, self.containment_score)
            ranked.append(MatchCandidate(record=record, score=score, rationale=rationale))
        return ranked

    @staticmethod
    def best_of(ranked: Sequence[MatchCandidate]) -> Optional[MatchCandidate]:
        """Highest score; ties go to the earliest candidate"""
        best = None
        for candidate in ranked:
            if best is None or candidate.score > best.score:
                best = candidate
        return best

    def resolve(
        self,
        target: MediaRecord,
        candidates: Sequence[MediaRecord],
        policy: ResolutionPolicy = ResolutionPolicy.SKIP_ON_AMBIGUITY
    ) -> Optional[MediaRecord]:
        """
        Choose the source record for target.

        Args:
            target: Record of the work item
            candidates: Catalog records sharing the target's file name key
            policy: Behavior when no candidate clears the threshold

        Returns:
            Chosen record, or None when nothing could be chosen
        """
        if not candidates:
            self.last_outcome = ResolutionOutcome(reason="no candidates")
            return None

        if len(candidates) == 1:
            self.last_outcome = ResolutionOutcome(record=candidates[0], reason="single candidate")
            return candidates[0]

        ranked = self.rank(target, candidates)
        choice = self._choose(target, ranked, policy)
        return ranked[choice].record if choice is not None else None

    def resolve_releases(
        self,
        target: MediaRecord,
        releases: Sequence,
        policy: ResolutionPolicy = ResolutionPolicy.SKIP_ON_AMBIGUITY
    ) -> Optional[object]:
        """
        Choose the best remote release for target.

        Releases go through the same threshold and policy as catalog
        candidates. Among releases tied at the top score an official release
        wins, then the service's own ranking. A single release is returned
        without scoring.

        Args:
            target: Record built from the seeder hints
            releases: ReleaseCandidate list in service rank order
            policy: Behavior when no release clears the threshold

        Returns:
            Chosen ReleaseCandidate or None
        """
        if not releases:
            self.last_outcome = ResolutionOutcome(reason="no remote results")
            return None
        if len(releases) == 1:
            self.last_outcome = ResolutionOutcome(record=releases[0].to_record(), reason="single remote result")
            return releases[0]

        scored = []
        for position, release in enumerate(releases):
            record = release.to_record()
            score, rationale = score_with_rationale(target, record, self.containment_score)
            scored.append((score, release.is_official, -position, release,
                           MatchCandidate(record=record, score=score, rationale=rationale)))
        scored.sort(key=lambda s: (s[0], s[1], s[2]), reverse=True)

        ordered = [s[3] for s in scored]
        choice = self._choose(target, [s[4] for s in scored], policy)
        return ordered[choice] if choice is not None else None

    def _choose(
        self,
        target: MediaRecord,
        ranked: List[MatchCandidate],
        policy: ResolutionPolicy
    ) -> Optional[int]:
        """Index into ranked picked by threshold or policy; None records the item for manual review"""
        best = self.best_of(ranked)
        best_index = next((i for i, c in enumerate(ranked) if c is best), None)
        outcome = ResolutionOutcome(best=best, candidates=ranked, scored=True)
        self.last_outcome = outcome

        manual = self.require_manual and policy is ResolutionPolicy.PROMPT_FOR_SELECTION

        if best is not None and best.score > self.threshold and not manual:
            outcome.record = best.record
            outcome.reason = f"best score {best.score:.2f} above threshold {self.threshold:.2f}"
            return best_index

        if policy is ResolutionPolicy.PROMPT_FOR_SELECTION and self.prompt is not None:
            choice = self.prompt(target, ranked)
            if choice is not None and 0 <= choice < len(ranked):
                outcome.record = ranked[choice].record
                outcome.best = ranked[choice]
                outcome.reason = f"selected candidate {choice + 1} of {len(ranked)}"
                return choice
            outcome.reason = "selection skipped"
        else:
            outcome.reason = (
                f"ambiguous: best score {best.score:.2f} does not clear threshold {self.threshold:.2f}"
                if best is not None else "ambiguous"
            )

        outcome.error = MatchAmbiguous(outcome.reason, target.path)
        self.manual_review.append(target.file_name_key)
        return None
