"""
Audio generation package.

This package builds audio generation tasks and runs them through the
single-flight task queue scheduler.
"""

from .errors import ConfigurationError, SynthesisError, classify_synthesis_exception
from .tasks import (
    TaskKind,
    AudioGenerationTask,
    build_test_game_tasks,
    build_phrase_tasks,
    count_existing,
)
from .scheduler import (
    SchedulerState,
    CancellationToken,
    TaskFailure,
    GenerationSummary,
    Progress,
    TaskQueueScheduler,
)

__all__ = [
    'ConfigurationError', 'SynthesisError', 'classify_synthesis_exception',
    'TaskKind', 'AudioGenerationTask', 'build_test_game_tasks', 'build_phrase_tasks',
    'count_existing', 'SchedulerState', 'CancellationToken', 'TaskFailure',
    'GenerationSummary', 'Progress', 'TaskQueueScheduler'
]
