"""snapsolve: screenshot-to-solution pipeline for vision language models.

Captured screenshots are queued in two bounded lanes, sent to a
chat-completions endpoint that streams its answer back token by token, and
turned into a structured problem and solution. A second lane collects
follow-up screenshots for a hosted debug pass.
"""

__version__ = "0.1.0"

# Storage & streaming
from .frame_store import BlobStorage, DiskStorage, Frame, FrameStore, Lane
from .stream_decoder import StreamDecoder
from .gateway import AIGateway, build_chat_request
from .remote_debug import RemoteDebugClient

# Orchestration
from .pipeline_run import CancelToken, PipelineRun, Stage, run_cancellable
from .orchestrator import Orchestrator
from .controller import ScreenshotController
from .events import CallbackSink, EventSink, EventType, PipelineEvent, RecordingSink
from .session import SessionState, View

# Types, errors & config
from .schema import DebugPayload, ProblemInfo, SolutionPayload
from .errors import (
    AuthError,
    GatewayTimeout,
    InvalidCredentialError,
    MalformedResponse,
    NoInputError,
    ProviderError,
    QuotaExceeded,
    RunCancelled,
    SnapSolveError,
    TransportError,
)
from .config import SnapSolveConfig, default_config

__all__ = [
    # Storage & streaming
    "BlobStorage",
    "DiskStorage",
    "Frame",
    "FrameStore",
    "Lane",
    "StreamDecoder",
    "AIGateway",
    "build_chat_request",
    "RemoteDebugClient",
    # Orchestration
    "CancelToken",
    "PipelineRun",
    "Stage",
    "run_cancellable",
    "Orchestrator",
    "ScreenshotController",
    "CallbackSink",
    "EventSink",
    "EventType",
    "PipelineEvent",
    "RecordingSink",
    "SessionState",
    "View",
    # Types, errors & config
    "DebugPayload",
    "ProblemInfo",
    "SolutionPayload",
    "AuthError",
    "GatewayTimeout",
    "InvalidCredentialError",
    "MalformedResponse",
    "NoInputError",
    "ProviderError",
    "QuotaExceeded",
    "RunCancelled",
    "SnapSolveError",
    "TransportError",
    "SnapSolveConfig",
    "default_config",
]
