"""
Core launcher engine for orchestrating the play pipeline.

This package contains the primary logic. The `PipelineOrchestrator` acts as
the state machine that drives one play request from version resolution to the
running game, publishing its progress through an `EventChannel`.
"""
