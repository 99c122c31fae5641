"""Workflow orchestration (resolve, probe, confirm, mutate, purge, report).

The CLI delegates every state transition to these helpers and only keeps
the printing and prompting on its side.
"""
