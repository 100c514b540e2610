"""Session state and its pure transitions.

Every user action that produces visible output (a query or an AI request)
bumps ``generation``. Completions carry the generation they were started
under and are dropped when a newer action has begun since.
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

from .models import ExtractionResult


@dataclass(frozen=True)
class SessionState:
    query: str = ""
    result: Optional[ExtractionResult] = None
    ai_mode: Optional[str] = None
    ai_output: Optional[str] = None
    error: Optional[str] = None
    loading: bool = False
    ai_loading: bool = False
    downloads_in_flight: int = 0
    generation: int = 0


@dataclass(frozen=True)
class QueryStarted:
    query: str


@dataclass(frozen=True)
class QuerySucceeded:
    generation: int
    result: ExtractionResult


@dataclass(frozen=True)
class QueryFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class AIStarted:
    mode: str


@dataclass(frozen=True)
class AISucceeded:
    generation: int
    text: str


@dataclass(frozen=True)
class AIFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class DownloadStarted:
    pass


@dataclass(frozen=True)
class DownloadFinished:
    pass


@dataclass(frozen=True)
class ErrorCleared:
    pass


Action = Union[QueryStarted, QuerySucceeded, QueryFailed, AIStarted, AISucceeded,
               AIFailed, DownloadStarted, DownloadFinished, ErrorCleared]


def reduce(state: SessionState, action: Action) -> SessionState:
    if isinstance(action, QueryStarted):
        # Clear everything derived from the previous query before the request goes out
        return replace(
            state, query=action.query, result=None, ai_mode=None, ai_output=None,
            error=None, loading=True, ai_loading=False, generation=state.generation + 1,
        )

    if isinstance(action, AIStarted):
        return replace(
            state, ai_mode=action.mode, ai_output=None, ai_loading=True,
            generation=state.generation + 1,
        )

    if isinstance(action, (QuerySucceeded, QueryFailed, AISucceeded, AIFailed)):
        if action.generation != state.generation:
            return state

    if isinstance(action, QuerySucceeded):
        return replace(state, result=action.result, loading=False)
    if isinstance(action, QueryFailed):
        return replace(state, error=action.message, loading=False)
    if isinstance(action, AISucceeded):
        return replace(state, ai_output=action.text, ai_loading=False)
    if isinstance(action, AIFailed):
        # AI problems show up inline in the output area
        return replace(state, ai_output=action.message, ai_loading=False)
    if isinstance(action, DownloadStarted):
        return replace(state, downloads_in_flight=state.downloads_in_flight + 1)
    if isinstance(action, DownloadFinished):
        return replace(state, downloads_in_flight=max(0, state.downloads_in_flight - 1))
    if isinstance(action, ErrorCleared):
        return replace(state, error=None)

    raise TypeError(f"Unknown action: {action!r}")
