"""Polling checkers for the supported content platforms."""

from .base import (
    CandidateItem,
    Checker,
    CheckerError,
    CycleReport,
    DeliveryError,
    DispatchError,
    FetchError,
    FetchNetworkError,
    FetchParseError,
    MentionDirective,
    Messenger,
    StoreError,
    StoreUnavailableError,
)
from .checker import PlatformChecker
from .dispatcher import Dispatcher, MentionMode
from .reddit import build_reddit_checker
from .scheduler import Scheduler
from .youtube import build_youtube_checker

__all__ = [
    "CandidateItem",
    "Checker",
    "CheckerError",
    "CycleReport",
    "DeliveryError",
    "DispatchError",
    "Dispatcher",
    "FetchError",
    "FetchNetworkError",
    "FetchParseError",
    "MentionDirective",
    "MentionMode",
    "Messenger",
    "PlatformChecker",
    "Scheduler",
    "StoreError",
    "StoreUnavailableError",
    "build_reddit_checker",
    "build_youtube_checker",
]
