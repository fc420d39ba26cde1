"""
Single-job execution engine for a continuous-integration runner.

A job is driven through the phases env, prepare, test, deploy (optional) and cleanup,
running the configured provider and plugins in every phase and streaming status events
to an external observer.
"""

from stagecoach.version import __version__
