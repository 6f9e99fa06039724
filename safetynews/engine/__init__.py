"""
Safety News Risk Engine.

Components:
- factors: the six weighted risk factors, each zero-guarded
- trend: window-over-window comparison and significant changes
- recommendations: fixed, order-stable guidance rules
- risk_engine: assess(area, radius_km, window_hours) → RiskAssessment
"""
