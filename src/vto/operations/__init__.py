"""Operation layer: requests, command building, progress and executors.

Modules:
- requests: pydantic request models (OperationRequest union)
- decisions: stream copy eligibility
- command: FFmpeg argument builders
- progress: ProgressMonitor
- cancellation: CancellationToken / CancellationController
- context: OperationContext
- executors: Convert, Compress, Trim and ExtractAudio executors

Import from the submodules directly; this package does not re-export so the
engine layer can depend on cancellation without import cycles.
"""
