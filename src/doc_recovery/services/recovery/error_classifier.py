"""
Recovery Strategy Classification

Maps a processing error and its attempt history to a recovery strategy:
- Transient (network, timeout): retry automatically, then ask the user
- Resource exhaustion (memory): degrade to a low-memory processor
- Content quality (OCR, parse): alternative processor, then skip
- Upstream service (AI): bounded retries, then basic extraction
- Input contract (validation): always surfaced to the user

Usage:
    engine = RecoveryStrategyEngine()

    strategy = engine.classify(error, attempt=session_file.retry_count)

    if strategy.type == StrategyType.FALLBACK:
        run_with(strategy.fallback_processor)
"""

import logging
from typing import Callable, Dict, Optional

from ...models.processing import ErrorCode, ProcessingError
from ...models.recovery import RecoveryStrategy, StrategyType

logger = logging.getLogger(__name__)

Rule = Callable[[int], RecoveryStrategy]

NETWORK_RETRY = RecoveryStrategy(
    type=StrategyType.RETRY,
    description="Network issue detected. Will retry automatically.",
    automated=True,
    max_retries=3,
)
NETWORK_MANUAL = RecoveryStrategy(
    type=StrategyType.MANUAL,
    description="Multiple network failures. Please check your connection.",
    automated=False,
    user_action="Check your internet connection and try again",
)
MEMORY_FALLBACK = RecoveryStrategy(
    type=StrategyType.FALLBACK,
    description="File too large. Will try with reduced quality settings.",
    automated=True,
    fallback_processor="low-memory",
)
OCR_FALLBACK = RecoveryStrategy(
    type=StrategyType.FALLBACK,
    description="Text recognition failed. Will try alternative OCR method.",
    automated=True,
    fallback_processor="alternative-ocr",
)
PARSE_FALLBACK = RecoveryStrategy(
    type=StrategyType.FALLBACK,
    description="File format issue. Will try alternative parser.",
    automated=True,
    fallback_processor="alternative-parser",
)
PARSE_SKIP = RecoveryStrategy(
    type=StrategyType.SKIP,
    description="File appears corrupted. Recommend skipping this file.",
    automated=False,
    user_action="Skip this file and continue with others",
)
AI_RETRY = RecoveryStrategy(
    type=StrategyType.RETRY,
    description="AI service temporarily unavailable. Will retry.",
    automated=True,
    max_retries=2,
)
AI_FALLBACK = RecoveryStrategy(
    type=StrategyType.FALLBACK,
    description="AI service unavailable. Will use basic topic extraction.",
    automated=True,
    fallback_processor="basic-extraction",
)
VALIDATION_MANUAL = RecoveryStrategy(
    type=StrategyType.MANUAL,
    description="File validation failed. User action required.",
    automated=False,
    user_action="Please check file format and size requirements",
)
DEFAULT_RETRY = RecoveryStrategy(
    type=StrategyType.RETRY,
    description="Unexpected error. Will attempt retry.",
    automated=True,
    max_retries=1,
)
DEFAULT_SKIP = RecoveryStrategy(
    type=StrategyType.SKIP,
    description="Unable to process this file. Recommend skipping.",
    automated=False,
    user_action="Skip this file and continue with others",
)
SESSION_NOT_FOUND = RecoveryStrategy(
    type=StrategyType.ABORT,
    description="Session not found",
    automated=False,
    user_action="Please start a new session",
)


def _ladder(
    threshold: int, below: RecoveryStrategy, at_or_above: RecoveryStrategy
) -> Rule:
    """Strategy that escalates once the attempt count reaches threshold."""

    def rule(attempt: int) -> RecoveryStrategy:
        return below if attempt < threshold else at_or_above

    return rule


def _always(strategy: RecoveryStrategy) -> Rule:
    return lambda attempt: strategy


class RecoveryStrategyEngine:
    """
    Decision table from (error code, attempt) to recovery strategy.

    Thresholds are absolute attempt counts: the attempt is the file's
    retry_count for file errors, or the stage retry count for session-level
    errors, read before the current error is counted.

    Decision Table:
        NETWORK_ERROR / TIMEOUT_ERROR:
        - attempt < 3 -> retry (automated, max 3)
        - attempt >= 3 -> manual

        MEMORY_ERROR -> fallback "low-memory"
        OCR_ERROR -> fallback "alternative-ocr"

        PARSE_ERROR:
        - attempt 0 -> fallback "alternative-parser"
        - attempt >= 1 -> skip (manual)

        AI_SERVICE_ERROR:
        - attempt < 2 -> retry (automated, max 2)
        - attempt >= 2 -> fallback "basic-extraction"

        VALIDATION_ERROR -> manual

        Anything else:
        - attempt 0 -> retry (automated, max 1)
        - attempt >= 1 -> skip (manual)
    """

    DEFAULT_RULES: Dict[str, Rule] = {
        ErrorCode.NETWORK_ERROR.value: _ladder(3, NETWORK_RETRY, NETWORK_MANUAL),
        ErrorCode.TIMEOUT_ERROR.value: _ladder(3, NETWORK_RETRY, NETWORK_MANUAL),
        ErrorCode.MEMORY_ERROR.value: _always(MEMORY_FALLBACK),
        ErrorCode.OCR_ERROR.value: _always(OCR_FALLBACK),
        ErrorCode.PARSE_ERROR.value: _ladder(1, PARSE_FALLBACK, PARSE_SKIP),
        ErrorCode.AI_SERVICE_ERROR.value: _ladder(2, AI_RETRY, AI_FALLBACK),
        ErrorCode.VALIDATION_ERROR.value: _always(VALIDATION_MANUAL),
    }

    def __init__(self, custom_rules: Optional[Dict[str, Rule]] = None):
        """
        Initialize strategy engine.

        Args:
            custom_rules: Rules to add/override per error code
        """
        self.rules: Dict[str, Rule] = dict(self.DEFAULT_RULES)
        if custom_rules:
            self.rules.update(custom_rules)
        self.default_rule: Rule = _ladder(1, DEFAULT_RETRY, DEFAULT_SKIP)

        logger.info(f"RecoveryStrategyEngine initialized with {len(self.rules)} rules")

    def classify(self, error: ProcessingError, attempt: int) -> RecoveryStrategy:
        """
        Choose a recovery strategy.

        Args:
            error: Reported processing error
            attempt: Prior attempts for the failing target (0-indexed)

        Returns:
            RecoveryStrategy for the error
        """
        attempt = max(0, attempt)
        rule = self.rules.get(error.code, self.default_rule)
        strategy = rule(attempt)

        logger.debug(
            f"Classified {error.code} at attempt {attempt} as {strategy.type.value}"
            + (f" ({strategy.fallback_processor})" if strategy.fallback_processor else "")
        )
        return strategy

    def is_known_code(self, code: str) -> bool:
        """Check whether a code has its own rule."""
        return code in self.rules
