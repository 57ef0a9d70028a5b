"""Deployment readiness checks, build pipeline and remote smoke probes."""

__version__ = "0.1.0"
