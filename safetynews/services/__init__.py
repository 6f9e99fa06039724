"""
Safety News Services.

Components:
- decision: decision-service protocol and the OpenRouter gateway
- resilience: retry with backoff and circuit breaker for the gateway
- orchestrator: two-round tool execution state machine
- agents: SearchAgent and GeoAgent
- geo_tasks: observable background geo-processing jobs
"""
