#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Selection callbacks for PROMPT_FOR_SELECTION.

A callback receives the target record and the scored candidates in catalog
order and returns the chosen index, or None to skip the item.
"""

from typing import Callable, List, Optional, Sequence

from agents.resolver import MatchCandidate
from media.records import MediaRecord


class ConsolePrompt:
    """Numbered menu on the console; blank input skips"""

    def __init__(self, input_func: Callable[[str], str] = input, output: Callable[[str], None] = print):
        self.input_func = input_func
        self.output = output

    def __call__(self, target: MediaRecord, candidates: Sequence[MatchCandidate]) -> Optional[int]:
        self.output(f"\nMultiple matches found for: {target.file_name}")
        self.output(f"  Target: {target.display_artist or '?'} - {target.title or '?'} [{target.album or '?'}]")
        for i, candidate in enumerate(candidates, 1):
            record = candidate.record
            self.output(f"  {i}. {record.path}")
            self.output(f"     {record.display_artist or '?'} - {record.title or '?'} "
                        f"[{record.album or '?'}] score {candidate.describe()}")

        while True:
            try:
                answer = self.input_func(f"Select match (1-{len(candidates)}), or Enter to skip: ").strip()
            except EOFError:
                return None
            if not answer:
                return None
            try:
                choice = int(answer)
            except ValueError:
                choice = 0
            if 1 <= choice <= len(candidates):
                return choice - 1
            self.output("Invalid choice, try again")


class ScriptedPrompt:
    """
    Prompt that answers from a fixed list of choices.

    Each call consumes the next choice (0-based index or None); once the
    list is exhausted every further call skips.
    """

    def __init__(self, choices: Sequence[Optional[int]] = ()):
        self.choices: List[Optional[int]] = list(choices)
        self.calls: List[List[MatchCandidate]] = []

    def __call__(self, target: MediaRecord, candidates: Sequence[MatchCandidate]) -> Optional[int]:
        self.calls.append(list(candidates))
        if not self.choices:
            return None
        return self.choices.pop(0)
