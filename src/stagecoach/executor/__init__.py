"""
Leaf components of a job: running commands, emitting status events and tracking cancellation.

The controller wires these together per job; plugins only see them through the
ExecutionContext.
"""
