"""
Safety News Incident Pipeline.

Components:
- validator: structural schema contract for incident records
- assembler: tool outputs to validated incidents, with fallback synthesis
- evaluator: dataset quality scoring for a saved results batch
"""
