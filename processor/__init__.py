"""
Processor package for Signal Watcher.

Cycle stages:
- InferenceAdapter: items -> candidate signals
- SignalMerger: candidates -> merged records
- AlphaSelector: best merged record -> highlight

Between cycles, AgentPoster posts the latest signal for users whose agent
is enabled.

Main entry point: WatchPipeline
"""

from .models import CandidateSignal, CycleReport, normalize_key
from .output_parser import parse_candidates
from .merger import SignalMerger, fold_candidate
from .alpha import AlphaSelector
from .inference import InferenceAdapter
from .commands import Command, CommandQueue, TriggerCycle, Repost
from .repost import ContentPoster, TwitterPoster, RepostHandler
from .agent import AgentPoster, report_text
from .pipeline import WatchPipeline, build_pipeline

__all__ = [
    # Pipeline
    "WatchPipeline",
    "build_pipeline",
    # Stages
    "InferenceAdapter",
    "SignalMerger",
    "fold_candidate",
    "AlphaSelector",
    "parse_candidates",
    # Models
    "CandidateSignal",
    "CycleReport",
    "normalize_key",
    # Commands
    "Command",
    "CommandQueue",
    "TriggerCycle",
    "Repost",
    "ContentPoster",
    "TwitterPoster",
    "RepostHandler",
    # Agent posts
    "AgentPoster",
    "report_text",
]
