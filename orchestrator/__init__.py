# Library Reconciliation System
# Configuration, reporting and the reconciliation pipeline

from .config import ConfigManager, ConfigurationError
from .report import ItemOutcome, ItemState, ReportLog, RunSummary
from .prompt import ConsolePrompt, ScriptedPrompt
from .pipeline import ReconciliationPipeline

__all__ = [
    'ConfigManager',
    'ConfigurationError',
    'ItemOutcome',
    'ItemState',
    'ReportLog',
    'RunSummary',
    'ConsolePrompt',
    'ScriptedPrompt',
    'ReconciliationPipeline'
]
