# Processing Agents
# Specialized agents for scanning, matching, merging and tagging

from .base import BaseAgent
from .similarity import string_similarity, record_similarity
from .scanner import ScannerAgent, CatalogIndex, build_index
from .resolver import MatchResolver, MatchCandidate, ResolutionPolicy
from .fixer import FixerAgent, MergePlan, MergeResult
from .tagger import TaggerAgent

__all__ = [
    'BaseAgent',
    'string_similarity',
    'record_similarity',
    'ScannerAgent',
    'CatalogIndex',
    'build_index',
    'MatchResolver',
    'MatchCandidate',
    'ResolutionPolicy',
    'FixerAgent',
    'MergePlan',
    'MergeResult',
    'TaggerAgent'
]
