"""
Low level representation of jobs, commands and errors -- not expected to be user facing.

Used to stabilise the contract between the controller, the command executor and the
plugins/providers.
"""
