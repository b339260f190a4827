"""
Translation module - Core translation functionality

This module provides:
- TranslationManager: Batch run coordinator
- DocumentTranslator: Per-document translation workflow
- StructureWalker: Leaf translation of nested metadata values
- RunProgress / RunSummary: Progress tracking dataclasses
- Classifier and chunking utilities
"""

from autotranslate.translation.progress import RunProgress, RunSummary
from autotranslate.translation.classifier import should_skip
from autotranslate.translation.walker import StructureWalker
from autotranslate.translation.document import (
    DocumentOutcome,
    DocumentResult,
    DocumentTranslator,
    SkipReason,
)
from autotranslate.translation.manager import RunParameters, TranslationManager
