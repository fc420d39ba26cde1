"""
This module drives a single job: given a Task and a Config, it runs the phases in order, each
phase being a sequence of provider/plugin tasks, until the job completes, fails or is cancelled.

The module is organised as follows:
 - context defines the ExecutionContext handed to every task
 - outcome defines the result of a phase
 - phases is the state machine deciding which phase comes next
 - runner runs the tasks of a single phase
 - job is the Job entity bundling the above, this is the job execution entrypoint
"""
