"""Check subsystem — models, runner, filesystem and remote checks."""

from .models import (
    AuthFailure,
    Check,
    CheckError,
    CheckResult,
    CheckTimeout,
    CommandFailure,
    ErrorKind,
    InvalidResponse,
    MissingArtifact,
    NetworkError,
    RunSummary,
)
from .runner import CheckRunner, run_checks
